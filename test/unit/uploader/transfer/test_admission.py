"""Tests for the admission gate and throughput summaries."""

import pytest

from uploader.transfer.admission import BoundedAdmission, UnboundedAdmission, build_admission
from uploader.transfer.errors import AdmissionRejectedError
from uploader.transfer.stats import Throughput, TransferStats


class TestAdmission:
    """Tests for admission gates."""

    def test_build_unbounded(self) -> None:
        """Verify a zero limit disables admission control."""
        assert isinstance(build_admission(0), UnboundedAdmission)

    def test_build_bounded(self) -> None:
        """Verify a positive limit builds a bounded gate."""
        gate = build_admission(2)
        assert isinstance(gate, BoundedAdmission)
        assert gate.limit == 2

    def test_unbounded_always_admits(self) -> None:
        """Verify nested sessions are all admitted."""
        gate = UnboundedAdmission()
        with gate.admit(), gate.admit(), gate.admit():
            pass

    def test_bounded_refuses_when_full(self) -> None:
        """Verify the limit+1th concurrent session is refused with 503."""
        gate = BoundedAdmission(1)
        with gate.admit():
            with pytest.raises(AdmissionRejectedError) as exc_info:
                with gate.admit():
                    pass
        assert exc_info.value.status_code == 503

    def test_bounded_releases_on_error(self) -> None:
        """Verify a failed session frees its slot."""
        gate = BoundedAdmission(1)
        with pytest.raises(RuntimeError):
            with gate.admit():
                raise RuntimeError("boom")
        with gate.admit():
            pass

    def test_rejects_non_positive_limit(self) -> None:
        """Verify BoundedAdmission requires a positive limit."""
        with pytest.raises(ValueError):
            BoundedAdmission(0)


class TestThroughput:
    """Tests for Throughput.measure."""

    def test_measure(self) -> None:
        """Verify elapsed time, throughput and mean chunk size."""
        stats = TransferStats(bytes=10_000, chunks=4)
        result = Throughput.measure(0, stats, finished_ns=1_999_999)

        assert result.time_ms == 2
        assert result.throughput == 5_000_000
        assert result.part_size == 2500

    def test_measure_without_chunks(self) -> None:
        """Verify an empty transfer does not divide by zero."""
        result = Throughput.measure(0, TransferStats(), finished_ns=0)
        assert result.as_dict() == {"time_ms": 1, "size": 0, "throughput": 0, "part_size": 0}

    def test_stats_accumulate(self) -> None:
        """Verify += sums bytes and chunks."""
        total = TransferStats()
        total += TransferStats(bytes=5, chunks=1)
        total += TransferStats(bytes=7, chunks=2)
        assert (total.bytes, total.chunks) == (12, 3)
