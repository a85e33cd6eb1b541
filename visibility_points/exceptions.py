"""Errors raised while computing, committing and storing daily points"""


class PointsError(Exception):
    """Base exception for points computation errors"""
    pass


class InvalidAddressError(PointsError, ValueError):
    """Address is not a 0x-prefixed 20-byte hex string"""
    pass


class InvalidDateRangeError(PointsError, ValueError):
    """Requested period cannot be resolved into a valid range of days"""
    pass


class SubgraphError(PointsError):
    """Subgraph returned errors or an unusable payload"""
    pass


class StaleIndexerError(PointsError):
    """Indexer has not caught up with the end of the requested window"""
    pass


class MissingBoundaryBlockError(PointsError):
    """No trade block found to anchor the day's block range"""
    pass


class PointsInvariantError(PointsError):
    """Effective points exceed the total points to reward"""
    pass


class StorageError(PointsError):
    """Database read or write failed"""
    pass
