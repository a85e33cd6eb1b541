"""Merkle commitment of daily points and proof verification"""
import logging
from datetime import date
from decimal import ROUND_CEILING, ROUND_DOWN, Decimal, InvalidOperation, localcontext
from typing import List, Optional, Sequence

from eth_abi import encode
from eth_abi.exceptions import EncodingError
from eth_utils import decode_hex, encode_hex, keccak

from visibility_points.allocation import PRECISION
from visibility_points.exceptions import PointsInvariantError
from visibility_points.models.points import (
    ClaimablePoints,
    MerkleCommitment,
    PointsAllocation,
    UserClaimablePoints,
)
from visibility_points.utils import check_valid_address

logger = logging.getLogger(__name__)

DEFAULT_DECIMALS = 18


def truncate_points(points: Decimal, decimals: int) -> Decimal:
    """Round points toward zero at the given number of decimals"""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        return points.quantize(Decimal(1).scaleb(-decimals), rounding=ROUND_DOWN)


def encode_leaf(user_address: str, points: Decimal, decimals: int) -> bytes:
    """keccak256(address || uint256(points * 10^decimals))"""
    with localcontext() as ctx:
        ctx.prec = PRECISION
        scaled = int(points.scaleb(decimals).to_integral_value(rounding=ROUND_DOWN))
    return keccak(decode_hex(user_address.lower()) + encode(['uint256'], [scaled]))


def hash_pair(a: bytes, b: bytes) -> bytes:
    """Hash two sibling nodes, smallest first"""
    return keccak(a + b) if a <= b else keccak(b + a)


class MerkleTree:
    """
    Binary merkle tree with sorted pairs.

    A node left without a sibling at the end of a level is promoted to the
    next level as is, so proofs for it skip that level.
    """

    def __init__(self, leaves: Sequence[bytes]):
        self.leaves = list(leaves)
        self.layers: List[List[bytes]] = [self.leaves]

        layer = self.leaves
        while len(layer) > 1:
            next_layer = []
            for i in range(0, len(layer), 2):
                if i + 1 == len(layer):
                    next_layer.append(layer[i])
                else:
                    next_layer.append(hash_pair(layer[i], layer[i + 1]))
            self.layers.append(next_layer)
            layer = next_layer

    @property
    def root(self) -> Optional[bytes]:
        if not self.leaves:
            return None
        return self.layers[-1][0]

    def get_hex_root(self) -> Optional[str]:
        return encode_hex(self.root) if self.root is not None else None

    def get_proof(self, index: int) -> List[bytes]:
        """Sibling hashes from the leaf at `index` up to the root"""
        proof = []
        for layer in self.layers[:-1]:
            pair_index = index - 1 if index % 2 else index + 1
            if pair_index < len(layer):
                proof.append(layer[pair_index])
            index //= 2
        return proof

    def get_hex_proof(self, index: int) -> List[str]:
        return [encode_hex(node) for node in self.get_proof(index)]

    @staticmethod
    def verify(proof: Sequence[bytes], leaf: bytes, root: bytes) -> bool:
        computed = leaf
        for node in proof:
            computed = hash_pair(computed, node)
        return computed == root


def build_claimable_points(
        allocation: PointsAllocation,
        day: date,
        decimals: int = DEFAULT_DECIMALS
) -> MerkleCommitment:
    """
    Commit a day's allocation to a merkle tree.

    Leaves follow the insertion order of `allocation.points`. Points are
    truncated at `decimals` before being encoded and returned, so the stored
    amount is exactly the one a proof is valid for.

    Raises:
        PointsInvariantError: If effective points, rounded up, exceed total points rounded up
    """
    entries = list(allocation.points.items())
    leaves = [encode_leaf(user_address, points, decimals) for user_address, points in entries]
    tree = MerkleTree(leaves)

    claimable_points = ClaimablePoints(
        merkle_root=tree.get_hex_root(),
        day=day,
        decimals=decimals,
        total_points=allocation.total_points,
        effective_points=Decimal(0)
    )

    user_claimable_points = []
    with localcontext() as ctx:
        ctx.prec = PRECISION
        for index, (user_address, points) in enumerate(entries):
            truncated = truncate_points(points, decimals)
            claimable_points.effective_points += truncated
            user_claimable_points.append(UserClaimablePoints(
                user_address=user_address.lower(),
                points=truncated,
                merkle_proof=tree.get_hex_proof(index)
            ))

        effective_rounded = claimable_points.effective_points.to_integral_value(rounding=ROUND_CEILING)
        total_rounded = claimable_points.total_points.to_integral_value(rounding=ROUND_CEILING)

    if effective_rounded > total_rounded:
        logger.error(
            f"Effective points are greater than total for {day}: "
            f"claimable_points={claimable_points}, effective_rounded={effective_rounded}, "
            f"total_rounded={total_rounded}, users={len(user_claimable_points)}"
        )
        raise PointsInvariantError(
            f"Effective points are greater than total ({effective_rounded} > {total_rounded})"
        )

    logger.info(
        f"Merkle root for {day}: {claimable_points.merkle_root} "
        f"(total={claimable_points.total_points}, effective={claimable_points.effective_points})"
    )
    return MerkleCommitment(claimable_points=claimable_points, user_claimable_points=user_claimable_points)


def verify_merkle_proof(
        user_address: str,
        points: str,
        decimals: int,
        merkle_root: str,
        merkle_proof: Sequence[str]
) -> bool:
    """
    Check that (address, points) is a leaf of the tree with the given root.

    Points should be passed as a decimal string to avoid float precision loss.

    Raises:
        InvalidAddressError: If the address is malformed
    """
    normalized_address = check_valid_address(user_address)

    try:
        leaf = encode_leaf(normalized_address, Decimal(points), decimals)
        proof = [decode_hex(node) for node in merkle_proof]
        root = decode_hex(merkle_root)
    except (InvalidOperation, EncodingError, OverflowError, ValueError, TypeError) as e:
        logger.warning(f"Rejecting malformed proof input for {normalized_address}: {e}")
        return False

    return MerkleTree.verify(proof, leaf, root)
