"""Integration tests for evidence packaging and verification."""

import asyncio
import hashlib
from pathlib import Path

import pytest
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from bounty_audit.exceptions import (
    DataUnavailable,
    NotFound,
    OperationTimeout,
    StorageFailure,
    ValidationFailure,
)
from bounty_audit.kernel.events.event_store import EventStore
from bounty_audit.kernel.models import EventType, EvidencePackage, EvidencePackageKind
from bounty_audit.schemas.evidence import InclusionFlags
from bounty_audit.services.evidence_packager import EvidencePackager
from bounty_audit.services.fairness_audit_service import FairnessAuditService
from bounty_audit.services.integrity_verifier import IntegrityVerifier, parse_reference


@pytest.fixture
def packager(data_source, session_maker, blob_store, settings, clock):
    return EvidencePackager(data_source, session_maker, blob_store, settings=settings, clock=clock)


@pytest.fixture
def verifier(session_maker, blob_store, settings):
    return IntegrityVerifier(session_maker, blob_store, settings=settings)


async def count_packages(session_maker) -> int:
    async with session_maker() as session:
        return (await session.execute(select(func.count(EvidencePackage.id)))).scalar()


def stored_files(settings):
    root = Path(settings.evidence_storage_path)
    return [p for p in root.rglob("*") if p.is_file()] if root.exists() else []


class TestGenerateEvidencePackage:

    @pytest.mark.asyncio
    async def test_generates_and_records_package(self, packager, blob_store, session_maker, settings):
        package = await packager.generate_evidence_package("ch-1", EvidencePackageKind.PAYOUT_AUDIT)

        data = await blob_store.read_bytes(f"{package.artifact_id.hex}/{package.file_name}")
        assert data.startswith(b"%PDF")
        assert package.size_bytes == len(data)
        assert package.sha256 == hashlib.sha256(data).hexdigest()
        assert package.file_name.startswith("audit_ch-1_")
        assert package.verification_url == f"https://audit.example.com/verify/{package.verification_reference}"
        assert len(package.verification_reference) == 32
        assert package.supersedes_id is None
        assert package.incomplete_sections == []

        async with session_maker() as session:
            events = await EventStore(session).get_entity_history(
                "challenge", "ch-1", event_types=[EventType.EVIDENCE_PACKAGE_GENERATED],
            )
        assert [e.payload["artifact_id"] for e in events] == [str(package.artifact_id)]

    @pytest.mark.asyncio
    async def test_includes_latest_fairness_audit(self, data_source, session_maker, settings, clock, packager):
        audits = FairnessAuditService(data_source, session_maker, settings=settings, clock=clock)
        await audits.run_fairness_audit("ch-1")

        package = await packager.generate_evidence_package(
            "ch-1", "COMPLIANCE_REPORT", InclusionFlags(timeline=False, file_hashes=False),
        )

        listed = await packager.list_evidence_packages("ch-1")
        assert listed[0].kind == EvidencePackageKind.COMPLIANCE_REPORT
        assert listed[0].includes_ai_analysis is True
        assert listed[0].includes_timeline is False
        assert package.incomplete_sections == []

    @pytest.mark.asyncio
    async def test_new_package_supersedes_previous_of_same_kind(self, packager):
        first = await packager.generate_evidence_package("ch-1", EvidencePackageKind.PAYOUT_AUDIT)
        other_kind = await packager.generate_evidence_package("ch-1", EvidencePackageKind.INCIDENT_EVIDENCE)
        second = await packager.generate_evidence_package("ch-1", EvidencePackageKind.PAYOUT_AUDIT)

        assert other_kind.supersedes_id is None
        assert second.supersedes_id == first.artifact_id

        listed = await packager.list_evidence_packages("ch-1")
        assert [p.id for p in listed] == [second.artifact_id, other_kind.artifact_id, first.artifact_id]

    @pytest.mark.asyncio
    async def test_optional_source_failure_marks_section_incomplete(self, data_source, packager):
        data_source.failures["get_events"] = ConnectionError("events down")
        data_source.failures["get_file_hashes"] = ConnectionError("files down")

        package = await packager.generate_evidence_package("ch-1")

        assert package.incomplete_sections == ["file_hashes", "timeline"]
        listed = await packager.list_evidence_packages("ch-1")
        assert listed[0].incomplete_sections == ["file_hashes", "timeline"]

    @pytest.mark.asyncio
    async def test_missing_challenge(self, packager, session_maker, settings):
        with pytest.raises(NotFound):
            await packager.generate_evidence_package("nope")

        assert await count_packages(session_maker) == 0
        assert stored_files(settings) == []

    @pytest.mark.asyncio
    async def test_challenge_fetch_failure_aborts(self, data_source, packager, session_maker):
        data_source.failures["get_challenge"] = ConnectionError("down")

        with pytest.raises(DataUnavailable):
            await packager.generate_evidence_package("ch-1")
        assert await count_packages(session_maker) == 0

    @pytest.mark.asyncio
    async def test_unknown_kind_rejected(self, packager):
        with pytest.raises(ValidationFailure):
            await packager.generate_evidence_package("ch-1", "BIRTHDAY_CARD")

    @pytest.mark.asyncio
    async def test_commit_failure_discards_bytes(self, packager, session_maker, settings, monkeypatch):
        async def broken_commit(package):
            raise RuntimeError("database went away")

        monkeypatch.setattr(packager, "_commit", broken_commit)

        with pytest.raises(StorageFailure):
            await packager.generate_evidence_package("ch-1")

        assert await count_packages(session_maker) == 0
        assert stored_files(settings) == []

    @pytest.mark.asyncio
    async def test_write_failure_leaves_no_metadata(self, packager, session_maker, monkeypatch):
        async def broken_write(key, data):
            raise OSError("disk full")

        monkeypatch.setattr(packager.blob_store, "write_bytes", broken_write)

        with pytest.raises(StorageFailure):
            await packager.generate_evidence_package("ch-1")
        assert await count_packages(session_maker) == 0

    @pytest.mark.asyncio
    async def test_size_mismatch_is_storage_failure(self, packager, session_maker, settings, monkeypatch):
        real_write = packager.blob_store.write_bytes

        async def short_write(key, data):
            await real_write(key, data)
            return len(data) - 1

        monkeypatch.setattr(packager.blob_store, "write_bytes", short_write)

        with pytest.raises(StorageFailure):
            await packager.generate_evidence_package("ch-1")
        assert await count_packages(session_maker) == 0
        assert stored_files(settings) == []

    @pytest.mark.asyncio
    async def test_cancellation_before_commit_discards_bytes(self, packager, session_maker, settings, monkeypatch):
        reached_commit = asyncio.Event()

        async def slow_commit(package):
            reached_commit.set()
            await asyncio.sleep(60)

        monkeypatch.setattr(packager, "_commit", slow_commit)

        task = asyncio.create_task(packager.generate_evidence_package("ch-1"))
        await reached_commit.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        assert await count_packages(session_maker) == 0
        assert stored_files(settings) == []


class TestCommitTimeout:
    """The commit runs under io_timeout_seconds; its outcome decides whether bytes stay."""

    @pytest.fixture
    def quick_packager(self, data_source, session_maker, blob_store, settings, clock):
        quick = settings.model_copy(update={"io_timeout_seconds": 0.3})
        return EvidencePackager(data_source, session_maker, blob_store, settings=quick, clock=clock)

    @pytest.mark.asyncio
    async def test_late_acknowledged_commit_keeps_bytes(
        self, quick_packager, verifier, session_maker, monkeypatch,
    ):
        real_commit = AsyncSession.commit

        async def late_ack(session):
            await real_commit(session)
            await asyncio.sleep(1.0)

        monkeypatch.setattr(AsyncSession, "commit", late_ack)
        package = await quick_packager.generate_evidence_package("ch-1")
        monkeypatch.undo()

        assert await count_packages(session_maker) == 1
        result = await verifier.verify_evidence_package(package.verification_reference)
        assert result.valid is True
        assert result.artifact_id == package.artifact_id

    @pytest.mark.asyncio
    async def test_commit_that_never_landed_discards_bytes(
        self, quick_packager, session_maker, settings, monkeypatch,
    ):
        real_commit = AsyncSession.commit

        async def stalled(session):
            await asyncio.sleep(1.0)
            await real_commit(session)

        monkeypatch.setattr(AsyncSession, "commit", stalled)
        with pytest.raises(StorageFailure) as exc_info:
            await quick_packager.generate_evidence_package("ch-1")
        monkeypatch.undo()

        assert exc_info.value.context["commit_outcome"] == "absent"
        assert await count_packages(session_maker) == 0
        assert stored_files(settings) == []

    @pytest.mark.asyncio
    async def test_unknown_outcome_keeps_bytes(self, packager, settings, monkeypatch):
        async def timed_out_commit(package):
            raise OperationTimeout("Operation timed out: _commit", {"timeout_seconds": 2.0})

        async def lookup_down(reference):
            raise ConnectionError("database unreachable")

        monkeypatch.setattr(packager, "_commit", timed_out_commit)
        monkeypatch.setattr(packager, "_lookup", lookup_down)

        with pytest.raises(StorageFailure) as exc_info:
            await packager.generate_evidence_package("ch-1")

        assert exc_info.value.context["commit_outcome"] == "unknown"
        assert len(stored_files(settings)) == 1


class TestVerifyEvidencePackage:

    @pytest.mark.asyncio
    async def test_untouched_package_is_valid(self, packager, verifier):
        package = await packager.generate_evidence_package("ch-1")

        result = await verifier.verify_evidence_package(package.verification_reference)

        assert result.valid is True
        assert result.sha256 == package.sha256
        assert result.recomputed_hash == package.sha256
        assert result.artifact_id == package.artifact_id
        assert result.challenge_id == "ch-1"
        assert result.recorded_at is not None

    @pytest.mark.asyncio
    async def test_accepts_full_url(self, packager, verifier):
        package = await packager.generate_evidence_package("ch-1")

        result = await verifier.verify_evidence_package(package.verification_url)

        assert result.valid is True

    @pytest.mark.asyncio
    async def test_single_byte_tamper_is_invalid(self, packager, verifier, settings):
        package = await packager.generate_evidence_package("ch-1")
        (path,) = stored_files(settings)
        data = bytearray(path.read_bytes())
        data[len(data) // 2] ^= 0x01
        path.write_bytes(bytes(data))

        result = await verifier.verify_evidence_package(package.verification_reference)

        assert result.valid is False
        assert result.sha256 == package.sha256
        assert result.recomputed_hash != package.sha256
        assert result.reason == "Hash mismatch"

    @pytest.mark.asyncio
    async def test_missing_bytes_fail_closed(self, packager, verifier, settings):
        package = await packager.generate_evidence_package("ch-1")
        for path in stored_files(settings):
            path.unlink()

        result = await verifier.verify_evidence_package(package.verification_reference)

        assert result.valid is False
        assert result.recomputed_hash is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize("reference", ["", "deadbeef" * 4, "https://audit.example.com/verify/"])
    async def test_unknown_reference_is_invalid(self, verifier, reference):
        result = await verifier.verify_evidence_package(reference)
        assert result.valid is False


def test_parse_reference():
    assert parse_reference("abc123") == "abc123"
    assert parse_reference("https://x.test/verify/abc123") == "abc123"
    assert parse_reference("https://x.test/verify/abc123/") == "abc123"
    assert parse_reference("https://x.test/verify/abc123?src=qr") == "abc123"
