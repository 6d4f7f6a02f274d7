"""Unit tests for patch result models.

Tests for PatchOutcome records and their conversion to tagged outcomes.
"""

import pytest
from pydantic import ValidationError
from verity.models.image import ImageRef
from verity.models.result import (
    SKIP_REASON_UP_TO_DATE,
    Failed,
    PatchOutcome,
    Skipped,
    Succeeded,
)


class TestPatchOutcome:
    """Tests for PatchOutcome model."""

    def test_defaults(self) -> None:
        """Only image_ref is needed; everything else defaults."""
        record = PatchOutcome(image_ref="nginx:1.25.3")

        assert record.skipped is False
        assert record.changed is False
        assert record.vuln_count == 0
        assert record.patched_image is None
        assert record.patched_reference == ""

    def test_parses_json_record(self) -> None:
        """Records written by patch jobs validate from JSON."""
        record = PatchOutcome.model_validate_json(
            '{"image_ref": "docker.io/library/nginx:1.25.3",'
            ' "patched_registry": "ghcr.io/verity-org",'
            ' "patched_repository": "library/nginx",'
            ' "patched_tag": "1.25.3-patched", "vuln_count": 4, "changed": true}'
        )

        assert record.patched_reference == "ghcr.io/verity-org/library/nginx:1.25.3-patched"
        assert record.vuln_count == 4

    def test_negative_vuln_count_rejected(self) -> None:
        """vuln_count cannot be negative."""
        with pytest.raises(ValidationError):
            PatchOutcome(image_ref="nginx", vuln_count=-1)

    def test_to_dict_omits_empty_strings(self) -> None:
        """to_dict drops empty optional strings but keeps flags."""
        data = PatchOutcome(image_ref="nginx:1.25.3", skipped=True).to_dict()

        assert data == {
            "image_ref": "nginx:1.25.3",
            "vuln_count": 0,
            "skipped": True,
            "changed": False,
        }


class TestToOutcome:
    """Tests for the record to outcome precedence."""

    def test_error_wins(self) -> None:
        """An error makes the outcome Failed even if skipped is set."""
        record = PatchOutcome(image_ref="nginx", error="build error", skipped=True, changed=True)

        assert record.to_outcome() == Failed(error="build error")

    def test_skipped_keeps_patched_reference(self) -> None:
        """A skipped record keeps its mirrored reference."""
        record = PatchOutcome(
            image_ref="nginx:1.25.3",
            patched_registry="ghcr.io",
            patched_repository="verity-org/nginx",
            patched_tag="1.25.3",
            skipped=True,
            skip_reason="no fixable vulnerabilities",
        )

        outcome = record.to_outcome()

        assert isinstance(outcome, Skipped)
        assert outcome.reason == "no fixable vulnerabilities"
        assert outcome.patched == ImageRef(
            repository="verity-org/nginx", registry="ghcr.io", tag="1.25.3"
        )

    def test_skipped_without_reason(self) -> None:
        """A skipped record without reason is reported as up to date."""
        outcome = PatchOutcome(image_ref="nginx", skipped=True).to_outcome()

        assert outcome == Skipped(reason=SKIP_REASON_UP_TO_DATE, patched=None)

    def test_success(self) -> None:
        """A record with neither error nor skip is a success."""
        record = PatchOutcome(
            image_ref="nginx:1.25.3",
            patched_registry="ghcr.io",
            patched_repository="verity-org/nginx",
            patched_tag="1.25.3-patched",
            vuln_count=3,
            changed=True,
        )

        outcome = record.to_outcome()

        assert isinstance(outcome, Succeeded)
        assert outcome.changed is True
        assert outcome.vuln_count == 3
        assert outcome.patched is not None
        assert outcome.patched.tag == "1.25.3-patched"

    def test_success_unchanged(self) -> None:
        """changed=false carries through to the outcome."""
        outcome = PatchOutcome(image_ref="nginx", changed=False).to_outcome()

        assert outcome == Succeeded(patched=None, vuln_count=0, changed=False)
