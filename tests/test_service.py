"""
Tests for SonarService: predict/sample/dataset handlers and lazy single-flight state.
"""

import threading
import time

import numpy as np
import pytest

from sonar_predictor import ServiceConfig, SonarService, load_dataset, train
from sonar_predictor.service import round_confidence

from conftest import synthetic_rows, write_rows


class CountingTrainer:
    """Wraps train() and records how often it ran."""

    def __init__(self, delay: float = 0.0):
        self.calls = 0
        self.delay = delay
        self._lock = threading.Lock()

    def __call__(self, dataset):
        with self._lock:
            self.calls += 1
        time.sleep(self.delay)
        return train(dataset)


class LingeringLock:
    """A lock that holds on for a moment after it is acquired."""

    def __init__(self, pause: float):
        self.pause = pause
        self._lock = threading.Lock()

    def __enter__(self):
        self._lock.acquire()
        time.sleep(self.pause)
        return self

    def __exit__(self, *exc_info):
        self._lock.release()


@pytest.fixture
def two_sample_service(two_sample_csv, samples_txt) -> SonarService:
    return SonarService(ServiceConfig(dataset_path=two_sample_csv, samples_path=samples_txt))


class TestRoundConfidence:

    @pytest.mark.parametrize(
        "value, expected",
        [(0.876, 0.88), (0.5, 0.5), (1.0, 1.0), (0.125, 0.13), (0.994, 0.99)],
    )
    def test_rounds_half_up(self, value, expected) -> None:
        assert round_confidence(value) == expected


class TestHandlePredict:

    def test_two_sample_scenario(self, two_sample_service) -> None:
        status, mine = two_sample_service.handle_predict({"features": [0.5] * 60})
        assert status == 200
        assert mine["result"] == "Mine"
        assert mine["rawClass"] == "M"
        assert mine["isFromDataset"] is True
        assert "warning" not in mine

        status, rock = two_sample_service.handle_predict({"features": [0.1] * 60})
        assert status == 200
        assert rock["result"] == "Rock"
        assert rock["isFromDataset"] is True

        status, unknown = two_sample_service.handle_predict({"features": [0.3] * 60})
        assert status == 200
        assert unknown["isFromDataset"] is False
        assert "unreliable" in unknown["warning"]

    def test_confidence_is_rounded(self, service, sonar_rows) -> None:
        status, body = service.handle_predict({"features": sonar_rows[0][0]})

        assert status == 200
        assert body["confidence"] == round(body["confidence"], 2)
        assert 0.5 <= body["confidence"] <= 1.0

    def test_fifty_nine_features(self, service) -> None:
        status, body = service.handle_predict({"features": [0.5] * 59})

        assert status == 400
        assert "exactly 60 numbers" in body["error"]

    @pytest.mark.parametrize("payload", [{}, {"features": "0.5"}, {"features": None}, [0.5] * 60])
    def test_missing_or_malformed_features(self, service, payload) -> None:
        status, body = service.handle_predict(payload)

        assert status == 400
        assert "exactly 60 numbers" in body["error"]

    def test_non_numeric_element(self, service) -> None:
        features = [0.5] * 60
        features[7] = "ten"

        status, body = service.handle_predict({"features": features})

        assert status == 400
        assert "Feature 8" in body["error"]

    def test_out_of_range_feature(self, service) -> None:
        features = [0.5] * 60
        features[3] = 1.5

        status, body = service.handle_predict({"features": features})

        assert status == 400
        assert body == {"error": "Feature 4 must be between 0 and 1. Got: 1.5"}

    def test_validation_errors_do_not_train(self, sonar_csv, samples_txt) -> None:
        trainer = CountingTrainer()
        svc = SonarService(ServiceConfig(sonar_csv, samples_txt), trainer=trainer)

        svc.handle_predict({"features": [2.0] * 60})

        assert trainer.calls == 0
        assert not svc.is_trained

    def test_strict_mode_rejects_unknown_vector_without_model(self, sonar_csv, samples_txt) -> None:
        trainer = CountingTrainer()
        svc = SonarService(ServiceConfig(sonar_csv, samples_txt), trainer=trainer)

        status, body = svc.handle_predict({"features": [0.45] * 60, "validateStrict": True})

        assert status == 400
        assert body["isFromDataset"] is False
        assert "not from the trained dataset" in body["error"]
        assert trainer.calls == 0
        assert not svc.is_trained

    def test_strict_mode_accepts_known_vector(self, service, sonar_rows) -> None:
        status, body = service.handle_predict(
            {"features": sonar_rows[1][0], "validateStrict": True}
        )

        assert status == 200
        assert body["isFromDataset"] is True
        assert body["result"] == "Rock"

    def test_numeric_strings_are_accepted(self, two_sample_service) -> None:
        status, body = two_sample_service.handle_predict({"features": ["0.5"] * 60})

        assert status == 200
        assert body["result"] == "Mine"

    def test_missing_dataset_is_internal_error(self, tmp_path, samples_txt) -> None:
        svc = SonarService(ServiceConfig(tmp_path / "nope.csv", samples_txt))

        status, body = svc.handle_predict({"features": [0.5] * 60})

        assert status == 500
        assert body == {"error": "Prediction failed"}

    def test_trainer_failure_is_internal_error(self, sonar_csv, samples_txt) -> None:
        def broken(dataset):
            raise RuntimeError("boom")

        svc = SonarService(ServiceConfig(sonar_csv, samples_txt), trainer=broken)

        status, body = svc.handle_predict({"features": [0.5] * 60})

        assert status == 500
        assert not svc.is_trained


class TestLazyState:

    def test_dataset_is_cached(self, service) -> None:
        assert service.dataset is service.dataset

    def test_model_trains_once(self, sonar_csv, samples_txt) -> None:
        trainer = CountingTrainer()
        svc = SonarService(ServiceConfig(sonar_csv, samples_txt), trainer=trainer)

        svc.handle_predict({"features": [0.5] * 60})
        svc.handle_predict({"features": [0.4] * 60})

        assert trainer.calls == 1
        assert svc.is_trained

    def test_concurrent_first_requests_train_once(self, sonar_csv, samples_txt) -> None:
        trainer = CountingTrainer(delay=0.2)
        svc = SonarService(ServiceConfig(sonar_csv, samples_txt), trainer=trainer)
        models = []
        barrier = threading.Barrier(8)

        def worker():
            barrier.wait()
            models.append(svc.model)

        threads = [threading.Thread(target=worker) for _ in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert trainer.calls == 1
        assert len(models) == 8
        assert all(m is models[0] for m in models)

    def test_reset_forces_reload(self, sonar_csv, samples_txt) -> None:
        trainer = CountingTrainer()
        svc = SonarService(ServiceConfig(sonar_csv, samples_txt), trainer=trainer)
        first_dataset = svc.dataset
        svc.model

        svc.reset()

        assert not svc.is_trained
        assert svc.dataset is not first_dataset
        svc.model
        assert trainer.calls == 2

    def test_reset_during_first_model_build_does_not_deadlock(self, sonar_csv, samples_txt) -> None:
        svc = SonarService(ServiceConfig(sonar_csv, samples_txt))
        # reset sits on the dataset lock while the first model build queues up
        svc._dataset_lock = LingeringLock(pause=0.2)
        resetting = threading.Thread(target=svc.reset, daemon=True)
        building = threading.Thread(target=lambda: svc.model, daemon=True)

        resetting.start()
        time.sleep(0.05)
        building.start()
        for t in (resetting, building):
            t.join(timeout=5)

        assert not resetting.is_alive()
        assert not building.is_alive()
        assert svc.is_trained

    @pytest.mark.slow
    def test_full_size_training_is_repeatable(self, tmp_path, samples_txt) -> None:
        path = write_rows(tmp_path / "full.csv", synthetic_rows(n_rows=208, seed=11))
        first = SonarService(ServiceConfig(path, samples_txt)).model
        second = SonarService(ServiceConfig(path, samples_txt)).model

        assert np.array_equal(first.weights, second.weights)
        assert first.bias == second.bias


class TestHandleSample:

    def test_returns_labeled_sample(self, service, sonar_rows) -> None:
        status, body = service.handle_sample()

        assert status == 200
        assert len(body["features"]) == 60
        assert body["actualLabel"] in {"Rock", "Mine"}
        known = [pytest.approx(f) for f, _ in sonar_rows[:4]]
        assert body["features"] in known

    def test_picks_every_line_eventually(self, service) -> None:
        seen = {tuple(service.handle_sample()[1]["features"]) for _ in range(200)}

        assert len(seen) == 4

    def test_unknown_label_and_bad_tokens(self, tmp_path, sonar_csv) -> None:
        path = tmp_path / "odd.txt"
        path.write_text(",".join(["x"] + ["0.5"] * 59) + ",Q\n", encoding="utf-8")
        svc = SonarService(ServiceConfig(sonar_csv, path))

        status, body = svc.handle_sample()

        assert status == 200
        assert body["actualLabel"] == "Unknown"
        assert body["features"][0] is None
        assert body["features"][1] == 0.5

    def test_empty_source_is_not_found(self, tmp_path, sonar_csv) -> None:
        path = tmp_path / "empty.txt"
        path.write_text("\n  \n", encoding="utf-8")
        svc = SonarService(ServiceConfig(sonar_csv, path))

        assert svc.handle_sample() == (404, {"error": "No samples available"})

    def test_missing_source_is_internal_error(self, tmp_path, sonar_csv) -> None:
        svc = SonarService(ServiceConfig(sonar_csv, tmp_path / "missing.txt"))

        assert svc.handle_sample() == (500, {"error": "Failed to load sample"})

    def test_sample_source_is_independent_of_dataset_cache(self, service, samples_txt) -> None:
        service.dataset
        samples_txt.write_text(",".join(["0.25"] * 60) + ",M\n", encoding="utf-8")

        status, body = service.handle_sample()

        assert body == {"features": [0.25] * 60, "actualLabel": "Mine"}


class TestHandleDataset:

    def test_first_page(self, service, sonar_rows) -> None:
        status, body = service.handle_dataset(page=1, limit=4)

        assert status == 200
        assert [item["id"] for item in body["items"]] == [1, 2, 3, 4]
        assert body["pagination"] == {
            "page": 1,
            "limit": 4,
            "totalItems": len(sonar_rows),
            "totalPages": 8,
        }
        assert body["stats"] == {"total": 30, "rocks": 15, "mines": 15}

    def test_last_partial_page(self, service) -> None:
        status, body = service.handle_dataset(page=8, limit=4)

        assert status == 200
        assert [item["id"] for item in body["items"]] == [29, 30]

    def test_filter_by_label(self, service) -> None:
        status, body = service.handle_dataset(limit=100, label_filter="mine")

        assert status == 200
        assert body["pagination"]["totalItems"] == 15
        assert all(item["label"] == "M" for item in body["items"])

    def test_lookup_by_id(self, service, sonar_csv) -> None:
        status, body = service.handle_dataset(sample_id="3")

        assert status == 200
        assert body["sample"] == load_dataset(sonar_csv).get(3).to_dict()

    def test_unknown_id(self, service) -> None:
        assert service.handle_dataset(sample_id=999) == (404, {"error": "Sample not found"})

    @pytest.mark.parametrize(
        "kwargs",
        [{"page": 0}, {"limit": -1}, {"page": "abc"}, {"label_filter": "whales"}, {"sample_id": "x"}],
    )
    def test_bad_query(self, service, kwargs) -> None:
        status, body = service.handle_dataset(**kwargs)

        assert status == 400
        assert "error" in body

    def test_missing_dataset(self, tmp_path, samples_txt) -> None:
        svc = SonarService(ServiceConfig(tmp_path / "nope.csv", samples_txt))

        assert svc.handle_dataset() == (500, {"error": "Failed to load dataset"})
