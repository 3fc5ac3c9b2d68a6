"""
BuildMarket Backend: Buyer Profile Schemas
===========================================

What:  Payloads for saving and reading a buyer's onboarding playstyle.
"""

from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from buildmarket.schemas.build import GameType
from buildmarket.schemas.compatibility import PlaystyleVector


class PlaystyleUpdate(BaseModel):
    vector: PlaystyleVector
    preferred_sport: Optional[GameType] = None


class ProfileResponse(BaseModel):
    """
    Buyer profile.

    `playstyle_labels` is the same vector keyed by dimension name
    (e.g. {"shootVsDrive": 7, ...}) for clients that render sliders by key.
    """

    buyer_id: str
    preferred_sport: Optional[GameType] = None
    playstyle_vector: Optional[List[int]] = None
    playstyle_labels: Optional[Dict[str, int]] = Field(default=None)
    updated_at: datetime
