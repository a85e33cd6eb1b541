"""Database storage service for daily points commitments"""
import logging
from datetime import datetime
from decimal import Decimal
from typing import List, Optional, Sequence

from sqlalchemy.dialects.postgresql import insert as postgresql_insert
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from visibility_points.exceptions import StorageError
from visibility_points.merkle import truncate_points
from visibility_points.models.db import ClaimablePointsRecord, UserClaimablePointsRecord
from visibility_points.models.points import ClaimablePoints, UserClaimablePoints
from visibility_points.models.response import ClaimablePointsForUser
from visibility_points.period import PAST_WEEK, get_period
from visibility_points.utils import check_valid_address

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1000

UPSERT_DIALECTS = {
    'postgresql': postgresql_insert,
    'sqlite': sqlite_insert,
}


def format_points(points: Decimal, decimals: int) -> str:
    """Fixed-point string truncated at `decimals` places"""
    return f"{truncate_points(points, decimals):f}"


class StorageService:
    """Handles all database operations"""

    def __init__(self, session: Session, chunk_size: int = CHUNK_SIZE):
        if not session:
            raise ValueError("Database session is required")
        self.session = session
        self.chunk_size = chunk_size

    def _insert(self, table):
        dialect = self.session.get_bind().dialect.name
        if dialect not in UPSERT_DIALECTS:
            raise StorageError(f"Upserts are not supported on {dialect}")
        return UPSERT_DIALECTS[dialect](table)

    def upsert_claimable_points(self, data: ClaimablePoints) -> Optional[int]:
        """
        Insert or overwrite the commitment of a day.

        Returns:
            Optional[int]: Row id, None when there is no merkle root to store
        """
        if not data.merkle_root:
            logger.warning(f"No merkle root for {data.day}, skipping claimable points")
            return None

        values = {
            'day': data.day,
            'merkle_root': data.merkle_root,
            'decimals': data.decimals,
            'total_points': format_points(data.total_points, data.decimals),
            'effective_points': format_points(data.effective_points, data.decimals),
        }
        stmt = self._insert(ClaimablePointsRecord.__table__).values(**values)
        stmt = stmt.on_conflict_do_update(
            index_elements=['day'],
            set_={
                'merkle_root': stmt.excluded.merkle_root,
                'decimals': stmt.excluded.decimals,
                'total_points': stmt.excluded.total_points,
                'effective_points': stmt.excluded.effective_points,
                'updated_at': datetime.utcnow(),
            }
        )
        self.session.execute(stmt)

        return self.session.query(ClaimablePointsRecord.id).filter_by(day=data.day).scalar()

    def delete_user_claimable_points(self, claimable_points_id: int) -> int:
        """Remove the user rows of a commitment, their proofs are void once the root changes"""
        deleted = (
            self.session.query(UserClaimablePointsRecord)
            .filter(UserClaimablePointsRecord.claimable_points_id == claimable_points_id)
            .delete(synchronize_session=False)
        )
        if deleted:
            logger.info(f"Removed {deleted} previous user claimable points")
        return deleted

    def upsert_user_claimable_points(
            self,
            claimable_points_id: int,
            user_data: Sequence[UserClaimablePoints],
            points_decimals: int
    ) -> int:
        """
        Insert or overwrite user points in batches of `chunk_size` rows.

        Returns:
            int: Number of rows written
        """
        if not claimable_points_id or not user_data:
            return 0

        written = 0
        for i in range(0, len(user_data), self.chunk_size):
            chunk = user_data[i:i + self.chunk_size]
            values = [
                {
                    'claimable_points_id': claimable_points_id,
                    'user_address': user.user_address.strip().lower(),
                    'points': format_points(user.points, points_decimals),
                    'merkle_proof': list(user.merkle_proof) if user.merkle_proof is not None else None,
                }
                for user in chunk
            ]
            stmt = self._insert(UserClaimablePointsRecord.__table__).values(values)
            stmt = stmt.on_conflict_do_update(
                index_elements=['claimable_points_id', 'user_address'],
                set_={
                    'points': stmt.excluded.points,
                    'merkle_proof': stmt.excluded.merkle_proof,
                }
            )
            self.session.execute(stmt)
            written += len(chunk)
            logger.info(f"Stored {written}/{len(user_data)} user claimable points")

        return written

    def store_claimable_points_and_users(
            self,
            claimable_points: ClaimablePoints,
            users: Sequence[UserClaimablePoints]
    ) -> Optional[int]:
        """
        Store a day's commitment and its user points in a single transaction.

        Either every chunk and the commitment are committed, or nothing is.

        Raises:
            StorageError: If any write fails
        """
        try:
            claimable_points_id = self.upsert_claimable_points(claimable_points)
            if claimable_points_id is None:
                return None

            self.delete_user_claimable_points(claimable_points_id)
            self.upsert_user_claimable_points(claimable_points_id, users, claimable_points.decimals)
            self.session.commit()
            logger.info(f"Stored claimable points for {claimable_points.day} ({len(users)} users)")
            return claimable_points_id
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Database error storing claimable points and users: {e}")
            raise StorageError(f"Failed to store claimable points for {claimable_points.day}") from e

    def get_claimable_points_for_user(
            self,
            address: str,
            from_: Optional[str] = None,
            to: Optional[str] = None
    ) -> List[ClaimablePointsForUser]:
        """Stored points of a user over a date range, newest day first"""
        user_address = check_valid_address(address)
        period = get_period(from_, to, PAST_WEEK)

        try:
            rows = (
                self.session.query(UserClaimablePointsRecord, ClaimablePointsRecord)
                .join(ClaimablePointsRecord, UserClaimablePointsRecord.claimable_points_id == ClaimablePointsRecord.id)
                .filter(UserClaimablePointsRecord.user_address == user_address)
                .filter(ClaimablePointsRecord.day.between(period.from_date.date(), period.to_date.date()))
                .order_by(ClaimablePointsRecord.day.desc())
                .all()
            )
        except SQLAlchemyError as e:
            logger.error(f"Error fetching claimable points for user: {e}")
            raise StorageError("Failed to retrieve claimable points.") from e

        return [
            ClaimablePointsForUser(
                user_address=user_points.user_address,
                day=commitment.day,
                merkle_root=commitment.merkle_root,
                decimals=commitment.decimals,
                points=Decimal(user_points.points),
                merkle_proof=user_points.merkle_proof
            )
            for user_points, commitment in rows
        ]
