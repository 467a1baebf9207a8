"""Unit tests for the command line entry point."""

import json
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from movsense.cli import collect_photo_refs, load_detections, main
from movsense.config.errors import ValidationError
from movsense.config.settings import settings
from movsense.models.detection import Detection
from movsense.models.property import PropertyContext
from movsense.services.pipeline import InventoryResult


BEDROOM_DETECTIONS = [
    {"label": "Queen Bed", "qty": 1, "room": "Bedroom"},
    {"label": "Nightstand", "qty": 2, "room": "Bedroom"},
    {"label": "Dresser", "qty": 1, "room": "Bedroom"},
]

MAPPING = {
    "Queen Bed": {"cf": 65, "minutes": 30, "wrap": True},
    "Nightstand": {"cf": 5, "minutes": 5},
    "Dresser": {"cubicFeet": 40, "minutes": 20},
}


def _write(path, data):
    path.write_text(json.dumps(data), encoding="utf-8")
    return str(path)


@pytest.fixture
def estimate_files(tmp_path):
    return (
        _write(tmp_path / "detections.json", BEDROOM_DETECTIONS),
        _write(tmp_path / "mapping.json", MAPPING),
        str(tmp_path / "estimate.json"),
    )


class TestEstimateCommand:
    """Tests for `movsense-inventory estimate`."""

    def test_writes_estimate(self, estimate_files):
        detections, mapping, out = estimate_files

        code = main(["estimate", detections, mapping, "--rate", "50", "--travel-mins", "30", "--out", out])

        assert code == 0
        with open(out, encoding="utf-8") as f:
            result = json.load(f)
        assert result == {"hours": 1.5, "crewSuggestion": 2, "total": 150, "totalCubicFeet": 115.0}

    def test_accepts_saved_detect_result(self, tmp_path, estimate_files):
        _, mapping, out = estimate_files
        saved = _write(tmp_path / "inventory.json", {"jobId": "job-1", "detections": BEDROOM_DETECTIONS})

        code = main(["estimate", saved, mapping, "--stairs", "--out", out])

        assert code == 0
        with open(out, encoding="utf-8") as f:
            assert json.load(f)["hours"] == 1.3

    def test_missing_file_is_input_error(self, tmp_path, capsys):
        code = main(["estimate", str(tmp_path / "nope.json"), str(tmp_path / "mapping.json")])

        assert code == 2
        assert "INVALID_FIELD" in capsys.readouterr().err

    def test_mapping_must_be_object(self, tmp_path, estimate_files):
        detections, _, _ = estimate_files
        mapping = _write(tmp_path / "bad_mapping.json", ["Queen Bed"])

        assert main(["estimate", detections, mapping]) == 2

    def test_invalid_params_rejected(self, estimate_files, capsys):
        detections, mapping, _ = estimate_files

        code = main(["estimate", detections, mapping, "--crew", "0"])

        assert code == 2
        assert "Invalid input" in capsys.readouterr().err


class TestDetectCommand:
    """Tests for `movsense-inventory detect`."""

    def test_missing_api_key(self, capsys):
        with patch.object(settings, "validate", side_effect=ValueError("OPENAI_API_KEY is required")):
            code = main(["detect", "a.jpg"])

        assert code == 2
        assert "OPENAI_API_KEY" in capsys.readouterr().err

    def test_runs_room_pipeline(self, tmp_path):
        out = str(tmp_path / "inventory.json")
        pipeline = MagicMock()
        pipeline.run = AsyncMock(return_value=InventoryResult(
            job_id="job-1",
            detections=[Detection(label="Sofa", qty=1, confidence=0.9, room="Living Room", cubic_feet=35, weight=245)],
            rooms={"living_room": ["a.jpg"]},
        ))

        with patch.object(settings, "validate"), \
                patch("movsense.cli.ModelClient"), \
                patch("movsense.cli.InventoryPipeline", return_value=pipeline):
            code = main(["detect", "a.jpg", "b.jpg", "--bedrooms", "2", "--sqft", "900", "--out", out])

        assert code == 0
        photos, context = pipeline.run.call_args.args
        assert photos == ["a.jpg", "b.jpg"]
        assert context == PropertyContext(bedrooms=2, sqft=900)
        with open(out, encoding="utf-8") as f:
            result = json.load(f)
        assert result["jobId"] == "job-1"
        assert result["detections"][0]["cubicFeet"] == 35

    def test_whole_photo_flag(self, tmp_path):
        pipeline = MagicMock()
        pipeline.run_whole_photo = AsyncMock(return_value=InventoryResult(job_id="job-2"))

        with patch.object(settings, "validate"), \
                patch("movsense.cli.ModelClient"), \
                patch("movsense.cli.InventoryPipeline", return_value=pipeline):
            code = main(["detect", "a.jpg", "--whole-photo", "--out", str(tmp_path / "out.json")])

        assert code == 0
        pipeline.run_whole_photo.assert_awaited_once()
        pipeline.run.assert_not_called()


class TestHelpers:
    """Tests for input helpers."""

    def test_collect_photo_refs_reads_files(self, tmp_path):
        listing = tmp_path / "photos.txt"
        listing.write_text("# listing 42\nhttps://x/1.jpg\n\nhttps://x/2.jpg\n", encoding="utf-8")

        refs = collect_photo_refs([str(listing), "https://x/3.jpg"])

        assert refs == ["https://x/1.jpg", "https://x/2.jpg", "https://x/3.jpg"]

    def test_load_detections_fills_estimates(self):
        detections = load_detections(BEDROOM_DETECTIONS)

        assert [d.label for d in detections] == ["Queen Bed", "Nightstand", "Dresser"]
        assert detections[0].cubic_feet == 65

    def test_load_detections_rejects_scalars(self):
        with pytest.raises(ValidationError):
            load_detections("Queen Bed")
