"""
User personalization signals: AI-derived style profile and manual
preferences.
"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass
class SuggestedSizes:
    top: Optional[str] = None
    bottom: Optional[str] = None


@dataclass
class StyleProfile:
    """Style signals inferred from a user's photos."""

    confidence: float = 0.0
    recommended_brands: List[str] = field(default_factory=list)
    suggested_sizes: SuggestedSizes = field(default_factory=SuggestedSizes)
    style_tags: List[str] = field(default_factory=list)

    def sizes(self) -> List[str]:
        """Top size, then bottom size when it differs."""
        sizes = []
        if self.suggested_sizes.top:
            sizes.append(self.suggested_sizes.top)
        if self.suggested_sizes.bottom and self.suggested_sizes.bottom != self.suggested_sizes.top:
            sizes.append(self.suggested_sizes.bottom)
        return sizes


@dataclass
class UserPreferences:
    """Preferences set by hand in the settings screen."""

    favorite_brands: List[str] = field(default_factory=list)
    sizes: List[str] = field(default_factory=list)


@dataclass
class UserProfile:
    id: str
    display_name: str = ""
    style_profile: Optional[StyleProfile] = None
    preferences: Optional[UserPreferences] = None
