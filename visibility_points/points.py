"""Daily points computation pipeline"""
import logging
from typing import List, Optional

from visibility_points.allocation import allocate
from visibility_points.config import Settings
from visibility_points.exceptions import MissingBoundaryBlockError, StaleIndexerError
from visibility_points.merkle import build_claimable_points
from visibility_points.models.activity import BlockInfo
from visibility_points.models.points import MerkleCommitment, PointsWeights, RuleFlags
from visibility_points.models.response import DayPointsResponse
from visibility_points.period import PAST_DAY, Period, get_period
from visibility_points.services.storage import StorageService
from visibility_points.services.subgraph import SubgraphAPI

logger = logging.getLogger(__name__)

class PointsComputer:
    """Computes, commits and stores the points of each requested day"""

    def __init__(
            self,
            settings: Settings,
            subgraph: Optional[SubgraphAPI] = None,
            storage: Optional[StorageService] = None
    ):
        """
        Initialize the pipeline from settings.

        Args:
            settings: Application settings
            subgraph: Activity source, built from settings when omitted
            storage: Where commitments go, nothing is stored when omitted
        """
        self.settings = settings
        self.storage = storage
        if subgraph is None:
            subgraph_settings = settings.subgraph_settings
            subgraph = SubgraphAPI(subgraph_settings.url, subgraph_settings.api_key, subgraph_settings.page_size)
        self.subgraph = subgraph

        self.flags = RuleFlags(
            add_from_protocol_fees=settings.ADD_FROM_PROTOCOL_FEES,
            add_from_holdings=settings.ADD_FROM_HOLDINGS,
            add_from_referrals=settings.ADD_FROM_REFERRALS,
            add_from_daily_active_users=settings.ADD_FROM_DAILY_ACTIVE_USERS
        )
        self.weights = PointsWeights(
            protocol_fees=settings.PROTOCOL_FEES_POINTS_SHARE,
            holdings=settings.HOLDINGS_POINTS_SHARE,
            referrals=settings.REFERRALS_POINTS_SHARE,
            daily_active_users=settings.DAILY_ACTIVE_USERS_POINTS_SHARE
        )

    def _check_block_info(self, block_info: BlockInfo, day: Period) -> int:
        """Return the block to snapshot the day at, once the indexer has caught up"""
        current = block_info.current_graph_timestamp
        if not current or int(current) < day.to_graph_timestamp:
            raise StaleIndexerError(
                f"Graph data is not up-to-date (current: {current}, requested: {day.to_graph_timestamp})"
            )

        if not block_info.first_trade_block_number:
            raise MissingBoundaryBlockError(f"No starting block number found for {day.from_date_utc}")
        if not block_info.last_trade_block_number:
            raise MissingBoundaryBlockError(f"No ending block number found for {day.from_date_utc}")

        return block_info.last_trade_block_number

    def commit_day(self, day: Period) -> MerkleCommitment:
        """Fetch a day's activity, allocate its points and build the merkle tree"""
        block_info = self.subgraph.fetch_block_info(day.from_graph_timestamp, day.to_graph_timestamp)
        to_block_number = self._check_block_info(block_info, day)

        snapshot = self.subgraph.fetch_activity(to_block_number, day.from_graph_timestamp)

        allocation = allocate(
            snapshot,
            flags=self.flags,
            weights=self.weights,
            base_points=self.settings.BASE_POINTS,
            points_per_protocol_fee_eth=self.settings.POINTS_PER_PROTOCOL_FEE_ETH
        )
        return build_claimable_points(allocation, day.from_date.date(), self.settings.POINTS_DECIMALS)

    def compute_day(self, day: Period) -> DayPointsResponse:
        """Commit a day and store it when storage is configured"""
        logger.info(f"Computing points for {day.from_date_utc}")
        commitment = self.commit_day(day)
        claimable_points = commitment.claimable_points

        stored = False
        if self.storage is not None:
            stored = self.storage.store_claimable_points_and_users(
                claimable_points,
                commitment.user_claimable_points
            ) is not None

        return DayPointsResponse(
            day=claimable_points.day,
            merkle_root=claimable_points.merkle_root,
            decimals=claimable_points.decimals,
            total_points=claimable_points.total_points,
            effective_points=claimable_points.effective_points,
            users=len(commitment.user_claimable_points),
            stored=stored
        )

    def compute(self, from_: Optional[str] = None, to: Optional[str] = None) -> List[DayPointsResponse]:
        """
        Compute every day of the range, oldest first.

        Defaults to yesterday. Any failure aborts the remaining days.
        """
        period = get_period(from_, to, PAST_DAY)
        results = []

        for day in period.days:
            try:
                results.append(self.compute_day(day))
            except Exception as e:
                logger.error(f"Error computing points for {day.from_date_utc}: {e}")
                raise

        return results
