"""Domain models for allocated and committed points"""
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional

@dataclass(frozen=True)
class RuleFlags:
    """Which allocation rules contribute points"""
    add_from_protocol_fees: bool = True
    add_from_holdings: bool = True
    add_from_referrals: bool = True
    add_from_daily_active_users: bool = True

@dataclass(frozen=True)
class PointsWeights:
    """Share of the daily pool given to each rule, must sum to 1"""
    protocol_fees: Decimal = Decimal("0.75")
    holdings: Decimal = Decimal("0.15")
    referrals: Decimal = Decimal("0.04")
    daily_active_users: Decimal = Decimal("0.06")

    def __post_init__(self):
        total = self.protocol_fees + self.holdings + self.referrals + self.daily_active_users
        if total != 1:
            raise ValueError(f"Points shares must sum to 1, got {total}")

@dataclass
class PointsAllocation:
    """Points to reward for a day and how they are split between users"""
    total_points: Decimal
    points: Dict[str, Decimal] = field(default_factory=dict)  # lowercased address -> points

@dataclass
class ClaimablePoints:
    """Merkle commitment of a day's points"""
    merkle_root: Optional[str]
    day: date
    decimals: int
    total_points: Decimal
    effective_points: Decimal

@dataclass
class UserClaimablePoints:
    """Points of one user as encoded in the merkle tree"""
    user_address: str
    points: Decimal
    merkle_proof: Optional[List[str]]

@dataclass
class MerkleCommitment:
    """Commitment record plus every user's leaf data"""
    claimable_points: ClaimablePoints
    user_claimable_points: List[UserClaimablePoints] = field(default_factory=list)
