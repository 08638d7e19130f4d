"""
Merkle Commitments
==================

Commitment trees over claim leaves and membership verification.

Conventions:
1. Parent hashing is sorted-pair: parent = H([min(a, b), max(a, b)])
2. A proof path is the list of sibling values from the leaf level upwards
3. Padding: an odd node at any level is paired with itself
4. Single leaf: root = leaf, depth 0

Because pairs are sorted, a proof path carries no left/right flags.

Version: 0.1.0
"""

from collections.abc import Sequence

from shared.zk.hasher import Hasher, Sha256FieldHasher, is_field_element


def tree_depth_for(leaf_count: int) -> int:
    """Depth of a tree built over `leaf_count` leaves."""
    if leaf_count < 1:
        raise ValueError("A commitment tree needs at least one leaf")
    return (leaf_count - 1).bit_length()


def merkle_parent(hasher: Hasher, a: int, b: int) -> int:
    """Hash two sibling nodes into their parent."""
    return hasher.hash([a, b] if a <= b else [b, a])


class MerkleTree:
    """
    Commitment tree built from a list of field-element leaves.

    Usage:
        tree = MerkleTree(leaves)
        root = tree.root
        path = tree.proof(2)
    """

    def __init__(self, leaves: Sequence[int], hasher: Hasher | None = None) -> None:
        if not leaves:
            raise ValueError("A commitment tree needs at least one leaf")
        for leaf in leaves:
            if not is_field_element(leaf):
                raise ValueError(f"Leaf is not a field element: {leaf!r}")

        self.hasher = hasher or Sha256FieldHasher()
        self.levels: list[list[int]] = [list(leaves)]

        current = self.levels[0]
        while len(current) > 1:
            padded = current + [current[-1]] if len(current) % 2 else current
            current = [
                merkle_parent(self.hasher, padded[i], padded[i + 1])
                for i in range(0, len(padded), 2)
            ]
            self.levels.append(current)

    @property
    def leaves(self) -> list[int]:
        return self.levels[0]

    @property
    def root(self) -> int:
        return self.levels[-1][0]

    @property
    def depth(self) -> int:
        return len(self.levels) - 1

    def index_of(self, leaf: int) -> int:
        """Position of a leaf, raising ValueError when absent."""
        return self.leaves.index(leaf)

    def proof(self, index: int) -> list[int]:
        """Sibling path for the leaf at `index`."""
        if not 0 <= index < len(self.leaves):
            raise IndexError(f"Leaf index {index} out of range")

        path = []
        for level in self.levels[:-1]:
            sibling = index ^ 1
            # Odd tail node is paired with itself
            path.append(level[sibling] if sibling < len(level) else level[index])
            index //= 2
        return path


class MerkleMembershipChecker:
    """
    Verifies that a leaf belongs to a committed set.

    Pure and fail-closed: malformed input yields False, never an exception.
    """

    def __init__(self, hasher: Hasher | None = None) -> None:
        self.hasher = hasher or Sha256FieldHasher()

    def compute_root(self, leaf: int, proof_path: Sequence[int]) -> int:
        node = leaf
        for sibling in proof_path:
            node = merkle_parent(self.hasher, node, sibling)
        return node

    def verify(
        self,
        root: int,
        leaf: int,
        proof_path: Sequence[int],
        depth: int | None = None,
    ) -> bool:
        """
        Check that `leaf` is committed under `root`.

        Args:
            root: Commitment root
            leaf: Claimed leaf
            proof_path: Sibling values from the leaf level upwards
            depth: Expected path length; any other length fails

        Returns:
            True if the recomputed root equals `root`
        """
        if depth is not None and len(proof_path) != depth:
            return False
        if not is_field_element(root) or not is_field_element(leaf):
            return False
        if not all(is_field_element(s) for s in proof_path):
            return False

        return self.compute_root(leaf, proof_path) == root
