"""Protocol subgraph integration service"""
import logging
import time
from decimal import Decimal
from typing import Any, Dict, List, Optional

import requests

from visibility_points.exceptions import SubgraphError
from visibility_points.models.activity import (
    ActivitySnapshot,
    BlockInfo,
    UserDayActivity,
    UsersDayActivity,
    VisibilityBalance,
)
from visibility_points.utils import check_valid_address

logger = logging.getLogger(__name__)

PAGE_SIZE = 6000

ACTIVITY_FOR_DAY_QUERY = """
query ActivityForDay(
  $blockNumberSnapshot: Int!
  $dayTimestamp: BigInt!
  $visibilityBalancesCursorId: String!
  $userDayActivitiesCursorId: String!
  $first: Int!
) {
  protocols(first: 1, block: { number: $blockNumberSnapshot }) {
    id
    totalValueLocked
  }
  visibilityBalances(
    first: $first
    orderBy: cursorId
    orderDirection: asc
    block: { number: $blockNumberSnapshot }
    where: { cursorId_gt: $visibilityBalancesCursorId, balance_gt: 0 }
  ) {
    cursorId
    balance
    user { id }
    visibility { totalSupply }
  }
  usersDayActivities(where: { day: $dayTimestamp }) {
    nbActiveUsers
    protocolFees
    referrerFees
  }
  userDayActivities(
    first: $first
    orderBy: cursorId
    orderDirection: asc
    where: { day: $dayTimestamp, cursorId_gt: $userDayActivitiesCursorId }
  ) {
    cursorId
    isActiveUser
    protocolFees
    referrerFees
    user { id }
  }
}
"""

BLOCK_INFOS_QUERY = """
query BlockInfos($fromGraphTimestamp: BigInt!, $toGraphTimestamp: BigInt!) {
  _meta {
    block { timestamp }
  }
  firstTrade: trades(
    first: 1
    orderBy: blockTimestamp
    orderDirection: asc
    where: { blockTimestamp_gte: $fromGraphTimestamp, blockTimestamp_lte: $toGraphTimestamp }
  ) {
    blockNumber
  }
  lastTrade: trades(
    first: 1
    orderBy: blockTimestamp
    orderDirection: desc
    where: { blockTimestamp_gte: $fromGraphTimestamp, blockTimestamp_lte: $toGraphTimestamp }
  ) {
    blockNumber
  }
}
"""


class SubgraphAPI:
    """Handles all subgraph queries and formats results into domain models"""

    def __init__(self, url: str, api_key: Optional[str] = None, page_size: int = PAGE_SIZE):
        self.url = url
        self.api_key = api_key
        self.page_size = page_size

    def _make_request(self, query: str, variables: Dict[str, Any]) -> dict:
        """Post a GraphQL query with retries and return its `data`"""
        headers = {
            'Content-Type': 'application/json',
            'Accept': 'application/json'
        }
        if self.api_key:
            headers['Authorization'] = f'Bearer {self.api_key}'

        for attempt in range(3):  # 3 retries
            try:
                response = requests.post(
                    self.url,
                    json={'query': query, 'variables': variables},
                    headers=headers,
                    timeout=60
                )
                response.raise_for_status()
                payload = response.json()
                break
            except requests.RequestException as e:
                if attempt == 2:  # Last attempt
                    logger.error(f"Subgraph request failed: {e}")
                    raise SubgraphError(f"Subgraph request failed: {e}") from e
                logger.warning(f"Retrying request after error: {e}")
                time.sleep(1)  # Wait before retry

        if payload.get('errors'):
            raise SubgraphError(f"Subgraph returned errors: {payload['errors']}")

        data = payload.get('data')
        if not data:
            raise SubgraphError("No data returned from the subgraph")
        return data

    def fetch_block_info(self, from_graph_timestamp: int, to_graph_timestamp: int) -> BlockInfo:
        """Indexer head timestamp and first/last trade blocks of a window"""
        data = self._make_request(BLOCK_INFOS_QUERY, {
            'fromGraphTimestamp': str(from_graph_timestamp),
            'toGraphTimestamp': str(to_graph_timestamp)
        })

        meta = data.get('_meta') or {}
        first_trade = data.get('firstTrade') or []
        last_trade = data.get('lastTrade') or []

        return BlockInfo(
            current_graph_timestamp=(meta.get('block') or {}).get('timestamp'),
            first_trade_block_number=int(first_trade[0]['blockNumber']) if first_trade else None,
            last_trade_block_number=int(last_trade[0]['blockNumber']) if last_trade else None
        )

    def fetch_activity(self, block_number: int, day_timestamp: int) -> ActivitySnapshot:
        """
        Activity of a day as of `block_number`.

        Holdings and per-user activity are paged independently, each by its own
        cursor, until a page comes back shorter than `page_size`.
        """
        visibility_balances_cursor_id = '0'
        user_day_activities_cursor_id = '0'
        need_more_visibility_balances = True
        need_more_user_day_activities = True

        snapshot = ActivitySnapshot(total_value_locked=Decimal(0))

        while need_more_visibility_balances or need_more_user_day_activities:
            data = self._make_request(ACTIVITY_FOR_DAY_QUERY, {
                'blockNumberSnapshot': block_number,
                'dayTimestamp': str(day_timestamp),
                'visibilityBalancesCursorId': visibility_balances_cursor_id,
                'userDayActivitiesCursorId': user_day_activities_cursor_id,
                'first': self.page_size
            })

            protocols = data.get('protocols') or []
            if not protocols:
                raise SubgraphError("No protocol data returned")
            snapshot.total_value_locked = Decimal(protocols[0]['totalValueLocked'])

            aggregates = data.get('usersDayActivities') or []
            snapshot.users_day_activities = self._format_users_day_activity(aggregates[0]) if aggregates else None

            if need_more_visibility_balances:
                balances = [self._format_visibility_balance(row) for row in data.get('visibilityBalances') or []]
                snapshot.visibility_balances.extend(balances)
                if balances:
                    visibility_balances_cursor_id = balances[-1].cursor_id
                need_more_visibility_balances = len(balances) == self.page_size

            if need_more_user_day_activities:
                activities = [self._format_user_day_activity(row) for row in data.get('userDayActivities') or []]
                snapshot.user_day_activities.extend(activities)
                if activities:
                    user_day_activities_cursor_id = activities[-1].cursor_id
                need_more_user_day_activities = len(activities) == self.page_size

        logger.info(
            f"Fetched activity at block {block_number}: {len(snapshot.visibility_balances)} balances, "
            f"{len(snapshot.user_day_activities)} user activities"
        )
        return snapshot

    def _format_visibility_balance(self, row: Dict) -> VisibilityBalance:
        return VisibilityBalance(
            user_address=check_valid_address(row['user']['id']),
            balance=int(row['balance']),
            total_supply=int(row['visibility']['totalSupply']),
            cursor_id=row['cursorId']
        )

    def _format_users_day_activity(self, row: Dict) -> UsersDayActivity:
        return UsersDayActivity(
            nb_active_users=int(row.get('nbActiveUsers') or 0),
            protocol_fees=int(row.get('protocolFees') or 0),
            referrer_fees=int(row.get('referrerFees') or 0)
        )

    def _format_user_day_activity(self, row: Dict) -> UserDayActivity:
        return UserDayActivity(
            user_address=check_valid_address(row['user']['id']),
            is_active_user=bool(row.get('isActiveUser')),
            protocol_fees=int(row.get('protocolFees') or 0),
            referrer_fees=int(row.get('referrerFees') or 0),
            cursor_id=row['cursorId']
        )
