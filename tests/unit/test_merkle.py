"""
Unit tests for commitment hashing and Merkle membership.
"""

import pytest

from shared.zk import (
    FIELD_ORDER,
    MerkleMembershipChecker,
    MerkleTree,
    Sha256FieldHasher,
    claim_leaf,
    claim_public_inputs,
    identity_to_field,
    is_field_element,
    tree_depth_for,
)
from shared.zk.merkle import merkle_parent


class TestHasher:
    """Tests for the SHA-256 field hasher."""

    def test_deterministic_and_in_field(self) -> None:
        hasher = Sha256FieldHasher()

        first = hasher.hash([1, 2])
        assert first == hasher.hash([1, 2])
        assert is_field_element(first)

    def test_order_sensitive(self) -> None:
        hasher = Sha256FieldHasher()

        assert hasher.hash([1, 2]) != hasher.hash([2, 1])

    def test_rejects_empty_and_out_of_field(self) -> None:
        hasher = Sha256FieldHasher()

        with pytest.raises(ValueError):
            hasher.hash([])
        with pytest.raises(ValueError):
            hasher.hash([FIELD_ORDER])
        with pytest.raises(ValueError):
            hasher.hash([-1])

    def test_is_field_element(self) -> None:
        assert is_field_element(0)
        assert is_field_element(FIELD_ORDER - 1)
        assert not is_field_element(FIELD_ORDER)
        assert not is_field_element(True)
        assert not is_field_element("1")

    def test_identity_normalized(self) -> None:
        """Test identities are case and whitespace insensitive."""
        assert identity_to_field(" 0xABC ") == identity_to_field("0xabc")

    def test_claim_leaf_binds_claimant_and_secret(self) -> None:
        hasher = Sha256FieldHasher()

        leaf = claim_leaf(hasher, "0xalice", "pw")
        assert leaf != claim_leaf(hasher, "0xbob", "pw")
        assert leaf != claim_leaf(hasher, "0xalice", "other")

    def test_claim_public_inputs_layout(self) -> None:
        assert claim_public_inputs(7, 99, "0xalice") == [7, 99, identity_to_field("0xalice")]


class TestMerkleTree:
    """Tests for building commitment trees."""

    @pytest.mark.parametrize("n,depth", [(1, 0), (2, 1), (3, 2), (4, 2), (5, 3), (8, 3), (9, 4)])
    def test_depth(self, n: int, depth: int) -> None:
        tree = MerkleTree(list(range(1, n + 1)))

        assert tree.depth == depth
        assert tree_depth_for(n) == depth

    def test_single_leaf_root_is_leaf(self) -> None:
        tree = MerkleTree([42])

        assert tree.root == 42
        assert tree.proof(0) == []

    def test_two_leaves(self) -> None:
        """Test the root of two leaves is their sorted-pair hash."""
        hasher = Sha256FieldHasher()
        tree = MerkleTree([9, 3], hasher)

        assert tree.root == hasher.hash([3, 9])
        assert tree.proof(0) == [3]
        assert tree.proof(1) == [9]

    def test_odd_node_paired_with_itself(self) -> None:
        hasher = Sha256FieldHasher()
        tree = MerkleTree([1, 2, 3], hasher)

        left = merkle_parent(hasher, 1, 2)
        right = merkle_parent(hasher, 3, 3)
        assert tree.root == merkle_parent(hasher, left, right)
        assert tree.proof(2) == [3, left]

    def test_levels_not_padded_in_place(self) -> None:
        tree = MerkleTree([1, 2, 3])

        assert tree.leaves == [1, 2, 3]
        assert len(tree.levels[1]) == 2

    def test_invalid_construction(self) -> None:
        with pytest.raises(ValueError):
            MerkleTree([])
        with pytest.raises(ValueError):
            MerkleTree([1, FIELD_ORDER])
        with pytest.raises(ValueError):
            tree_depth_for(0)

    def test_proof_index_out_of_range(self) -> None:
        with pytest.raises(IndexError):
            MerkleTree([1, 2]).proof(2)

    def test_index_of(self) -> None:
        tree = MerkleTree([5, 6, 7])

        assert tree.index_of(7) == 2
        with pytest.raises(ValueError):
            tree.index_of(8)


class TestMembershipChecker:
    """Tests for MerkleMembershipChecker.verify."""

    @pytest.fixture
    def tree(self) -> MerkleTree:
        return MerkleTree([11, 22, 33, 44, 55])

    def test_every_leaf_verifies(self, tree: MerkleTree) -> None:
        checker = MerkleMembershipChecker()

        for index, leaf in enumerate(tree.leaves):
            assert checker.verify(tree.root, leaf, tree.proof(index), depth=tree.depth)

    def test_wrong_leaf_fails(self, tree: MerkleTree) -> None:
        checker = MerkleMembershipChecker()

        assert not checker.verify(tree.root, 66, tree.proof(0), depth=tree.depth)

    def test_wrong_root_fails(self, tree: MerkleTree) -> None:
        checker = MerkleMembershipChecker()

        assert not checker.verify(tree.root + 1, 11, tree.proof(0), depth=tree.depth)

    def test_path_length_mismatch_fails_closed(self, tree: MerkleTree) -> None:
        checker = MerkleMembershipChecker()
        path = tree.proof(0)

        assert not checker.verify(tree.root, 11, path[:-1], depth=tree.depth)
        assert not checker.verify(tree.root, 11, path + [1], depth=tree.depth)

    def test_non_field_values_fail_closed(self, tree: MerkleTree) -> None:
        """Test malformed inputs return False instead of raising."""
        checker = MerkleMembershipChecker()
        path = tree.proof(0)

        assert not checker.verify(tree.root, -11, path, depth=tree.depth)
        assert not checker.verify(tree.root, 11, [FIELD_ORDER] + path[1:], depth=tree.depth)
        assert not checker.verify(FIELD_ORDER, 11, path, depth=tree.depth)

    def test_depth_optional(self, tree: MerkleTree) -> None:
        checker = MerkleMembershipChecker()

        assert checker.verify(tree.root, 33, tree.proof(2))
