"""Tests for survey configuration API endpoints."""

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from earshot.core import config as survey_config
from earshot.db import repo
from earshot.db.schema import Base
from earshot.models.domain import VariantKey


def create_test_app_and_client():
    """Create app with test database and return (client, engine)."""
    from earshot.api.app import create_app, get_db_session

    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)

    app = create_app()

    def override_get_db():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_db_session] = override_get_db
    client = TestClient(app)

    return client, engine


class TestGetConfig:
    """Test GET /api/config."""

    def test_defaults(self):
        client, _ = create_test_app_and_client()

        data = client.get("/api/config").json()

        assert data["pairing_weights"] == {"same_recording": 0.7, "different_recording": 0.2}
        assert data["placebo_probability"] == 0.1
        assert data["permutation_weights"] == {}
        assert data["segment_duration_ms"] == 12_000
        assert data["transition_weights"]["gap_pause_resume"] == 1.0
        assert data["mode_weights"]["tradeoff"] == 1.0
        assert data["tradeoff_gap"]["min_gap"] == 0.5
        assert data["tradeoff_gap"]["max_gap"] == 2.5
        assert len(data["tradeoff_gap"]["gap_points"]) == 3

    def test_malformed_stored_group_falls_back(self):
        client, engine = create_test_app_and_client()
        with Session(engine) as session:
            repo.set_config_value(session, "pairing_weights", "{not json")
            repo.set_config_value(session, "placebo_probability", "0.4")
            session.commit()

        data = client.get("/api/config").json()

        assert data["pairing_weights"] == {"same_recording": 0.7, "different_recording": 0.2}
        assert data["placebo_probability"] == 0.4


class TestPutConfig:
    """Test PUT /api/config/*."""

    def test_pairing_weights(self):
        client, engine = create_test_app_and_client()

        response = client.put(
            "/api/config/pairing-weights",
            json={"same_recording": 3, "different_recording": 1},
        )

        assert response.status_code == 200
        assert response.json()["pairing_weights"] == {
            "same_recording": 3.0,
            "different_recording": 1.0,
        }
        with Session(engine) as session:
            assert survey_config.get_pairing_weights(session)["same_recording"] == 3.0

    def test_pairing_weights_all_zero_rejected(self):
        client, _ = create_test_app_and_client()

        response = client.put(
            "/api/config/pairing-weights",
            json={"same_recording": 0, "different_recording": 0},
        )

        assert response.status_code == 400

    def test_negative_weight_rejected(self):
        client, _ = create_test_app_and_client()

        response = client.put(
            "/api/config/pairing-weights",
            json={"same_recording": -1, "different_recording": 1},
        )

        assert response.status_code == 400

    def test_placebo(self):
        client, _ = create_test_app_and_client()

        response = client.put("/api/config/placebo", json={"placebo_probability": 0.25})

        assert response.json()["placebo_probability"] == 0.25

    def test_placebo_out_of_range(self):
        client, _ = create_test_app_and_client()

        response = client.put("/api/config/placebo", json={"placebo_probability": 1.5})

        assert response.status_code == 400

    def test_permutation_weights(self):
        client, engine = create_test_app_and_client()

        response = client.put(
            "/api/config/permutation-weights",
            json={"opus_128": 2, "flac_0": 0.5},
        )

        assert response.status_code == 200
        assert response.json()["permutation_weights"] == {"flac_0": 0.5, "opus_128": 2.0}
        with Session(engine) as session:
            weights = survey_config.get_permutation_weights(session)
        assert weights[VariantKey("opus", 128)] == 2.0

    def test_permutation_weights_bad_key(self):
        client, _ = create_test_app_and_client()

        response = client.put("/api/config/permutation-weights", json={"opus": 2})

        assert response.status_code == 400

    def test_transition_weights(self):
        client, _ = create_test_app_and_client()

        response = client.put(
            "/api/config/transition-weights",
            json={"gapless": 2, "gap_continue": 0, "gap_restart": 0, "gap_pause_resume": 1},
        )

        assert response.json()["transition_weights"]["gapless"] == 2.0
        assert response.json()["transition_weights"]["gap_continue"] == 0.0

    def test_mode_weights(self):
        client, _ = create_test_app_and_client()

        response = client.put("/api/config/mode-weights", json={"tradeoff": 4})

        data = response.json()["mode_weights"]
        assert data["tradeoff"] == 4.0
        assert data["codec_compare"] == 1.0

    def test_segment_duration(self):
        client, _ = create_test_app_and_client()

        response = client.put("/api/config/segment-duration", json={"segment_duration_ms": 20_000})

        assert response.json()["segment_duration_ms"] == 20_000

    def test_segment_duration_out_of_range(self):
        client, _ = create_test_app_and_client()

        response = client.put("/api/config/segment-duration", json={"segment_duration_ms": 500})

        assert response.status_code == 400

    def test_tradeoff_gap(self):
        client, _ = create_test_app_and_client()

        response = client.put(
            "/api/config/tradeoff-gap",
            json={"min_gap": 1, "max_gap": 2, "gap_points": [{"gap": 1.5, "weight": 1}]},
        )

        data = response.json()["tradeoff_gap"]
        assert data["min_gap"] == 1.0
        assert data["max_gap"] == 2.0
        assert data["gap_points"] == [{"gap": 1.5, "weight": 1.0}]

    def test_tradeoff_gap_inverted_range(self):
        client, _ = create_test_app_and_client()

        response = client.put(
            "/api/config/tradeoff-gap",
            json={"min_gap": 2, "max_gap": 1, "gap_points": []},
        )

        assert response.status_code == 400

    def test_tradeoff_gap_empty_points_keep_defaults(self):
        client, _ = create_test_app_and_client()

        response = client.put(
            "/api/config/tradeoff-gap",
            json={"min_gap": 0.5, "max_gap": 3, "gap_points": []},
        )

        assert len(response.json()["tradeoff_gap"]["gap_points"]) == 3
