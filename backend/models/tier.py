"""Quality tier model."""
from enum import Enum
from functools import total_ordering
import logging

logger = logging.getLogger(__name__)


@total_ordering
class Tier(Enum):
    """
    Named quality level controlling the target raster resolution of a page.
    
    Tiers are totally ordered by intended sharpness:
    PREVIEW < AUTO < HIGH < RETINA. AUTO's multiplier depends on the device,
    so the ordering is by intent rather than by multiplier.
    """
    PREVIEW = 0
    AUTO = 1
    HIGH = 2
    RETINA = 3
    
    def __lt__(self, other):
        if not isinstance(other, Tier):
            return NotImplemented
        return self.value < other.value
    
    @property
    def label(self) -> str:
        return self.name.lower()
    
    @classmethod
    def from_quality(cls, quality: str) -> "Tier":
        """
        Map a quality preference (auto, high, retina) to its upgrade tier.
        
        Unrecognized values fall back to AUTO. PREVIEW is never a valid
        preference since it is the first-pass tier.
        """
        normalized = (quality or "").strip().lower()
        for tier in (cls.AUTO, cls.HIGH, cls.RETINA):
            if tier.label == normalized:
                return tier
        if normalized:
            logger.warning(f"Unrecognized quality '{quality}', falling back to auto")
        return cls.AUTO
