"""Domain models for a day of protocol activity read from the subgraph"""
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

@dataclass
class VisibilityBalance:
    """Credits of one visibility held by a user"""
    user_address: str
    balance: int       # credits
    total_supply: int  # credits of the visibility in circulation
    cursor_id: str = ''  # subgraph pagination key

@dataclass
class UsersDayActivity:
    """Aggregated activity of all users for the day"""
    nb_active_users: int
    protocol_fees: int  # wei
    referrer_fees: int  # wei

@dataclass
class UserDayActivity:
    """Activity of one user for the day"""
    user_address: str
    is_active_user: bool
    protocol_fees: int  # wei
    referrer_fees: int  # wei
    cursor_id: str = ''  # subgraph pagination key

@dataclass
class ActivitySnapshot:
    """Everything the allocator needs for one day"""
    total_value_locked: Decimal  # ETH
    visibility_balances: List[VisibilityBalance] = field(default_factory=list)
    users_day_activities: Optional[UsersDayActivity] = None
    user_day_activities: List[UserDayActivity] = field(default_factory=list)

@dataclass
class BlockInfo:
    """Indexer head and trade blocks bounding a time window"""
    current_graph_timestamp: Optional[int]
    first_trade_block_number: Optional[int]
    last_trade_block_number: Optional[int]
