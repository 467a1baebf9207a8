"""Unit tests for the detection pipeline orchestrator."""

import json

import pytest

from movsense.config.errors import ErrorCode, ModelInvocationError, ValidationError
from movsense.services.pipeline import InventoryPipeline
from movsense.tests.fixtures.mock_detections import (
    get_living_room_photo_items,
    photo_response,
    route_two_bedroom_listing,
)


@pytest.fixture
def pipeline(mock_model_client, fake_sleep):
    mock_model_client.complete.side_effect = route_two_bedroom_listing
    return InventoryPipeline(client=mock_model_client, room_delay_seconds=0, sleep=fake_sleep)


class TestRun:
    """Tests for InventoryPipeline.run."""

    @pytest.mark.asyncio
    async def test_two_bedroom_listing(self, pipeline, mock_model_client, sample_photos, two_bedroom_context):
        result = await pipeline.run(sample_photos, two_bedroom_context, job_id="job-test")

        assert result.job_id == "job-test"
        assert [(d.room, d.label) for d in result.detections] == [
            ("Kitchen", "Bar Stool"),
            ("Kitchen", "Dining Table"),
            ("Kitchen", "Refrigerator"),
            ("Bedroom 1", "Dresser"),
            ("Bedroom 1", "Nightstand"),
            ("Bedroom 1", "Queen Bed"),
            ("Bedroom 2", "Desk"),
            ("Bedroom 2", "Nightstand"),
            ("Bedroom 2", "Twin Bed"),
        ]
        assert mock_model_client.complete.call_count == 4

    @pytest.mark.asyncio
    async def test_merged_and_estimated_items(self, pipeline, sample_photos, two_bedroom_context):
        result = await pipeline.run(sample_photos, two_bedroom_context)
        by_key = {(d.room, d.label): d for d in result.detections}

        table = by_key[("Kitchen", "Dining Table")]
        assert table.qty == 2
        assert table.confidence == 0.8
        assert table.notes == "Seats six"

        assert by_key[("Kitchen", "Refrigerator")].cubic_feet == 45
        assert by_key[("Bedroom 1", "Nightstand")].qty == 2
        assert by_key[("Bedroom 2", "Desk")].cubic_feet == 42
        assert all(d.weight > 0 for d in result.detections)

    @pytest.mark.asyncio
    async def test_metadata_and_validation(self, pipeline, sample_photos, two_bedroom_context):
        result = await pipeline.run(sample_photos, two_bedroom_context)

        assert result.validation.anomalies == []
        assert result.validation.stats["bedsDetected"] == 2
        assert result.metadata["totalRooms"] == 3
        assert result.metadata["totalPhotos"] == 10
        assert result.metadata["classificationFallback"] is False
        assert result.metadata["failedRooms"] == []
        assert result.failed_rooms == []
        assert set(result.rooms) == {"bedroom_1", "bedroom_2", "kitchen"}

    @pytest.mark.asyncio
    async def test_on_room_receives_running_inventory(self, pipeline, sample_photos):
        snapshots = []

        def on_room(room_result, inventory):
            snapshots.append((room_result.room, len(inventory)))

        await pipeline.run(sample_photos, on_room=on_room)

        assert snapshots == [("bedroom_1", 3), ("bedroom_2", 6), ("kitchen", 9)]

    @pytest.mark.asyncio
    async def test_async_on_room_awaited(self, pipeline, sample_photos):
        rooms = []

        async def on_room(room_result, inventory):
            rooms.append(room_result.room)

        await pipeline.run(sample_photos, on_room=on_room)

        assert rooms == ["bedroom_1", "bedroom_2", "kitchen"]

    @pytest.mark.asyncio
    async def test_failed_room_reported(self, mock_model_client, fake_sleep, sample_photos):
        def complete(prompt, *args, **kwargs):
            if "ROOM: BEDROOM 2" in prompt:
                raise ModelInvocationError(
                    ErrorCode.MODEL_SERVER_ERROR, "down", status_code=500, retryable=True, attempts=5
                )
            return route_two_bedroom_listing(prompt)

        mock_model_client.complete.side_effect = complete
        pipeline = InventoryPipeline(client=mock_model_client, room_delay_seconds=0, sleep=fake_sleep)

        result = await pipeline.run(sample_photos)

        assert result.failed_rooms == ["bedroom_2"]
        assert len(result.detections) == 6
        assert not any(d.room == "Bedroom 2" for d in result.detections)

    @pytest.mark.asyncio
    async def test_blank_room_key_from_classifier_skipped(self, mock_model_client, fake_sleep):
        mock_model_client.complete.side_effect = ['{" ": [0], "kitchen": [1]}', '[{"label": "Chair"}]']
        pipeline = InventoryPipeline(client=mock_model_client, room_delay_seconds=0, sleep=fake_sleep)

        result = await pipeline.run(["a.jpg", "b.jpg"])

        assert result.rooms == {"kitchen": ["b.jpg"]}
        assert [(d.room, d.label) for d in result.detections] == [("Kitchen", "Chair")]
        assert mock_model_client.complete.call_count == 2

    @pytest.mark.asyncio
    async def test_non_finite_model_numbers_default(self, mock_model_client, fake_sleep):
        mock_model_client.complete.side_effect = [
            '{"kitchen": [0]}',
            '[{"label": "Chair", "confidence": NaN, "qty": 1e999}]',
        ]
        pipeline = InventoryPipeline(client=mock_model_client, room_delay_seconds=0, sleep=fake_sleep)

        result = await pipeline.run(["a.jpg"])

        assert result.failed_rooms == []
        assert len(result.detections) == 1
        chair = result.detections[0]
        assert (chair.room, chair.label, chair.qty, chair.confidence) == ("Kitchen", "Chair", 1, 0.5)

    @pytest.mark.asyncio
    async def test_classification_fallback_keeps_model_rooms(self, mock_model_client, fake_sleep, sample_photos):
        items = [
            {"label": "Sofa", "room": "Living Room", "confidence": 0.9},
            {"label": "King Bed", "room": "Master Bedroom", "confidence": 0.8},
            {"label": "Queen Bed", "room": "Master Bedroom", "confidence": 0.7},
        ]
        mock_model_client.complete.side_effect = ["not json", json.dumps(items)]
        pipeline = InventoryPipeline(client=mock_model_client, room_delay_seconds=0, sleep=fake_sleep)

        result = await pipeline.run(sample_photos)

        assert result.rooms == {"all_rooms": sample_photos}
        assert result.metadata["classificationFallback"] is True
        assert [(d.room, d.label) for d in result.detections] == [
            ("Living Room", "Sofa"),
            ("Master Bedroom", "King Bed"),
            ("Master Bedroom", "Queen Bed"),
        ]

    @pytest.mark.asyncio
    async def test_room_delay_between_rooms(self, mock_model_client, fake_sleep, sample_photos):
        mock_model_client.complete.side_effect = route_two_bedroom_listing
        pipeline = InventoryPipeline(client=mock_model_client, room_delay_seconds=2.0, sleep=fake_sleep)

        await pipeline.run(sample_photos)

        assert fake_sleep.delays == [2.0, 2.0]

    @pytest.mark.asyncio
    async def test_empty_photo_list_rejected(self, pipeline, mock_model_client):
        with pytest.raises(ValidationError) as exc_info:
            await pipeline.run([])

        assert exc_info.value.code == ErrorCode.EMPTY_PHOTO_LIST
        mock_model_client.complete.assert_not_called()

    @pytest.mark.asyncio
    async def test_api_dict(self, pipeline, sample_photos):
        result = await pipeline.run(sample_photos, job_id="job-api")

        data = result.to_api_dict()

        assert data["jobId"] == "job-api"
        assert "cubicFeet" in data["detections"][0]
        assert set(data["validation"]) == {"anomalies", "warnings", "stats"}


class TestRunWholePhoto:
    """Tests for InventoryPipeline.run_whole_photo."""

    @pytest.mark.asyncio
    async def test_whole_photo_path(self, mock_model_client, fake_sleep):
        mock_model_client.complete.side_effect = None
        mock_model_client.complete.return_value = photo_response(get_living_room_photo_items())
        pipeline = InventoryPipeline(client=mock_model_client, sleep=fake_sleep)

        result = await pipeline.run_whole_photo(["1.jpg", "2.jpg", "3.jpg"])

        assert [(d.room, d.label, d.qty) for d in result.detections] == [
            ("Living Room", "Coffee Table", 3),
            ("Living Room", "Sofa", 3),
        ]
        assert result.rooms == {}
        assert result.metadata["processedPhotos"] == 3
        assert result.metadata["totalRooms"] == 1
        assert mock_model_client.complete.call_count == 3

    @pytest.mark.asyncio
    async def test_empty_photo_list_rejected(self, mock_model_client):
        with pytest.raises(ValidationError):
            await InventoryPipeline(client=mock_model_client).run_whole_photo([])
