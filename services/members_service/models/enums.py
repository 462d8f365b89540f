"""Enum definitions for members service models."""

import enum


class Role(str, enum.Enum):
    ATHLETE = "athlete"
    ADMIN = "admin"


class Position(str, enum.Enum):
    """Playing positions; UNSET is the "-" placeholder of a fresh profile."""

    GK = "GK"
    CB = "CB"
    LB = "LB"
    RB = "RB"
    CDM = "CDM"
    CM = "CM"
    CAM = "CAM"
    LW = "LW"
    RW = "RW"
    ST = "ST"
    UNSET = "-"


class Foot(str, enum.Enum):
    RIGHT = "Right"
    LEFT = "Left"
    BOTH = "Both"
    UNSET = "-"


class AwardIcon(str, enum.Enum):
    TROPHY = "trophy"
    MEDAL = "medal"
    STAR = "star"
