"""Tests for the quota partitioner."""

from __future__ import annotations

import random

from treesync.core import QuotaPartitioner
from treesync.models import LeftOutReason

from tests.conftest import container, file_node


def _files(*sizes: int):
    return [file_node(f"f{i}", size) for i, size in enumerate(sizes)]


class TestQuotaPartitioner:
    """Tests for QuotaPartitioner.partition."""

    def test_too_large_is_checked_before_quota(self) -> None:
        """A file over the per-file limit never consumes quota."""
        nodes = _files(60, 40, 30)
        result = QuotaPartitioner().partition(nodes, 100, 50, 0)

        assert [n.file_size for n in result.too_large] == [60]
        assert [n.file_size for n in result.scheduled] == [40, 30]
        assert result.quota_exceeded == []

    def test_first_fit_in_input_order(self) -> None:
        nodes = _files(30, 30)
        result = QuotaPartitioner().partition(nodes, 50, 50, 0)

        assert result.scheduled == [nodes[0]]
        assert result.quota_exceeded == [nodes[1]]

    def test_rejected_files_do_not_consume_quota(self) -> None:
        """A later small file still fits after a big one was rejected."""
        nodes = _files(40, 80, 20)
        result = QuotaPartitioner().partition(nodes, 70, 100, 0)

        assert result.scheduled == [nodes[0], nodes[2]]
        assert result.quota_exceeded == [nodes[1]]

    def test_comparisons_are_inclusive(self) -> None:
        nodes = _files(50, 50)
        result = QuotaPartitioner().partition(nodes, 100, 50, 0)

        assert result.scheduled == nodes
        assert result.too_large == []

    def test_starting_usage_counts_against_quota(self) -> None:
        nodes = _files(20, 10)
        result = QuotaPartitioner().partition(nodes, 100, 50, 85)

        assert result.scheduled == [nodes[1]]
        assert result.quota_exceeded == [nodes[0]]

    def test_already_synced_files(self) -> None:
        synced = file_node("done", 999, needs_download=False)
        result = QuotaPartitioner().partition([synced], 10, 10, 0)

        assert result.already_synced == [synced]
        assert result.too_large == []

    def test_only_files_are_considered(self) -> None:
        folder = container("c1")
        doc = file_node("f1", 5)
        result = QuotaPartitioner().partition([folder, doc], 10, 10, 0)

        assert result.all_files == [doc]
        assert result.scheduled == [doc]

    def test_left_out_reasons(self) -> None:
        nodes = _files(60, 40, 40)
        result = QuotaPartitioner().partition(nodes, 50, 50, 0)

        assert result.left_out == [
            (nodes[0], LeftOutReason.FILE_TOO_BIG),
            (nodes[2], LeftOutReason.QUOTA_EXCEEDED),
        ]

    def test_groups_partition_the_files_exactly(self) -> None:
        """Every file lands in exactly one group and the quota is never exceeded."""
        rng = random.Random(1234)
        partitioner = QuotaPartitioner()
        for _ in range(200):
            nodes = [
                file_node(f"f{i}", rng.randint(0, 120), needs_download=rng.random() > 0.2)
                for i in range(rng.randint(0, 15))
            ]
            quota = rng.randint(0, 300)
            limit = rng.randint(0, 150)
            used = rng.randint(0, 100)

            result = partitioner.partition(nodes, quota, limit, used)

            groups = (
                result.scheduled
                + result.already_synced
                + result.too_large
                + result.quota_exceeded
            )
            assert sorted(n.ref_id for n in groups) == sorted(n.ref_id for n in nodes)
            assert len(groups) == len(nodes)

            running = used
            for node in result.scheduled:
                running += node.file_size
                assert running <= quota
                assert node.file_size <= limit
