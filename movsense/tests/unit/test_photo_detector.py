"""Unit tests for whole-photo furniture detection."""

import asyncio

import pytest

from movsense.config.errors import ErrorCode, ModelInvocationError, ValidationError
from movsense.models.detection import RawDetection
from movsense.services.photo_detector import PhotoFurnitureDetector, merge_photo_detections
from movsense.tests.fixtures.mock_detections import get_living_room_photo_items, photo_response


class TestMergePhotoDetections:
    """Tests for the photo-level merge."""

    def test_same_label_and_room_merged(self):
        detections = [
            RawDetection(label="Sofa", qty=1, confidence=0.7, room="Living Room", cubic_feet=35),
            RawDetection(label="Sofa", qty=1, confidence=0.9, room="Living Room", cubic_feet=30),
        ]

        merged = merge_photo_detections(detections)

        assert len(merged) == 1
        assert merged[0].qty == 2
        assert merged[0].confidence == 0.9
        assert merged[0].cubic_feet == 65

    def test_cubic_feet_kept_when_one_side_missing(self):
        detections = [
            RawDetection(label="Lamp", room="Office"),
            RawDetection(label="Lamp", room="Office", cubic_feet=3),
        ]

        merged = merge_photo_detections(detections)

        assert merged[0].cubic_feet == 3
        assert merged[0].qty == 2

    def test_different_rooms_not_merged(self):
        detections = [
            RawDetection(label="Lamp", room="Office"),
            RawDetection(label="Lamp", room="Bedroom"),
            RawDetection(label="lamp", room="Office"),
        ]

        assert len(merge_photo_detections(detections)) == 3


class TestPhotoFurnitureDetector:
    """Tests for PhotoFurnitureDetector.detect."""

    @pytest.mark.asyncio
    async def test_detects_and_merges_across_photos(self, mock_model_client):
        mock_model_client.complete.return_value = photo_response(get_living_room_photo_items())
        detector = PhotoFurnitureDetector(client=mock_model_client, batch_size=2)

        detections = await detector.detect(["1.jpg", "2.jpg", "3.jpg"])

        sofa = next(d for d in detections if d.label == "Sofa")
        assert sofa.qty == 3
        assert sofa.cubic_feet == 105
        assert mock_model_client.complete.call_count == 3

    @pytest.mark.asyncio
    async def test_photo_request_settings(self, mock_model_client):
        mock_model_client.complete.return_value = '{"items": []}'
        detector = PhotoFurnitureDetector(client=mock_model_client, photo_timeout=45)

        await detector.detect(["1.jpg"])

        args, kwargs = mock_model_client.complete.call_args
        assert args[1] == ["1.jpg"]
        assert kwargs["detail"] == "high"
        assert kwargs["json_object"] is True
        assert kwargs["timeout"] == 45
        assert kwargs["system_prompt"]

    @pytest.mark.asyncio
    async def test_photo_cap_applied(self, mock_model_client):
        mock_model_client.complete.return_value = "[]"
        detector = PhotoFurnitureDetector(client=mock_model_client, max_photos=4, batch_size=5)

        await detector.detect([f"{i}.jpg" for i in range(9)])

        assert mock_model_client.complete.call_count == 4

    @pytest.mark.asyncio
    async def test_failed_photo_contributes_nothing(self, mock_model_client):
        async def complete(prompt, image_urls, **kwargs):
            if image_urls[0] == "bad.jpg":
                raise ModelInvocationError(ErrorCode.MODEL_TIMEOUT, "timed out", retryable=True, attempts=3)
            return '{"items": [{"label": "Chair", "room": "Office"}]}'

        mock_model_client.complete.side_effect = complete
        detector = PhotoFurnitureDetector(client=mock_model_client, batch_size=5)

        detections = await detector.detect(["good.jpg", "bad.jpg", "good2.jpg"])

        assert len(detections) == 1
        assert detections[0].qty == 2

    @pytest.mark.asyncio
    async def test_batches_run_sequentially(self, mock_model_client):
        active = {"now": 0, "peak": 0}
        order = []

        async def complete(prompt, image_urls, **kwargs):
            active["now"] += 1
            active["peak"] = max(active["peak"], active["now"])
            order.append(image_urls[0])
            await asyncio.sleep(0.01)
            active["now"] -= 1
            return "[]"

        mock_model_client.complete.side_effect = complete
        detector = PhotoFurnitureDetector(client=mock_model_client, batch_size=2)

        await detector.detect(["1.jpg", "2.jpg", "3.jpg", "4.jpg", "5.jpg"])

        assert active["peak"] == 2
        assert set(order[:2]) == {"1.jpg", "2.jpg"}
        assert set(order[2:4]) == {"3.jpg", "4.jpg"}
        assert order[4] == "5.jpg"

    @pytest.mark.asyncio
    async def test_empty_photo_list_rejected(self, mock_model_client):
        with pytest.raises(ValidationError):
            await PhotoFurnitureDetector(client=mock_model_client).detect([])
