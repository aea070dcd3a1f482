"""Image encoders.

The CLIP encoder pulls in torch and transformers, so it is imported from
``seconde.core.encoders.clip_encoder`` directly where needed.
"""
