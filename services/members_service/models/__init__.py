"""Members Service models package.

Model definitions are split across:
  - models/profile.py — UserProfile with its stats and physical blocks
  - models/award.py   — awards shown on a profile
  - models/enums.py   — roles, positions, preferred foot, award icons
"""

from services.members_service.models.award import AWARDS_COLLECTION, Award  # noqa: F401
from services.members_service.models.enums import (  # noqa: F401
    AwardIcon,
    Foot,
    Position,
    Role,
)
from services.members_service.models.profile import (  # noqa: F401
    PROFILES_COLLECTION,
    UNSET,
    Physical,
    Stats,
    UserProfile,
)
