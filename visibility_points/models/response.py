"""Response models returned to CLI and API callers"""
from datetime import date
from decimal import Decimal
from typing import List, Optional
from pydantic import BaseModel

class DayPointsResponse(BaseModel):
    """
    Summary of one computed day.

    Attributes:
        day: UTC day the points reward
        merkle_root: Root of the day's tree, None when nobody earned points
        decimals: Fixed-point scale of encoded points
        total_points: Points to reward that day
        effective_points: Sum of truncated user points actually committed
        users: Number of users with points
        stored: Whether the commitment was written to the database
    """
    day: date
    merkle_root: Optional[str] = None
    decimals: int
    total_points: Decimal
    effective_points: Decimal
    users: int = 0
    stored: bool = False

class ClaimablePointsForUser(BaseModel):
    """Stored points of a user for one day, with what is needed to claim them"""
    user_address: str
    day: date
    merkle_root: str
    decimals: int
    points: Decimal
    merkle_proof: Optional[List[str]] = None

class ProofVerificationResponse(BaseModel):
    """Result of checking a claim against a merkle root"""
    user_address: str
    points: str
    decimals: int
    merkle_root: str
    valid: bool
