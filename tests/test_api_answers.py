"""Tests for answers API endpoint."""

from datetime import datetime, timezone

from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

from earshot.core import config as survey_config
from earshot.db.schema import (
    Answer,
    Base,
    EncodedVariant,
    EphemeralToken,
    SourceRecording,
    VariantOption,
)


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


def setup_catalog(engine) -> None:
    """Seed one approved recording with two renditions, no placebo rounds."""
    with Session(engine) as db_session:
        db_session.add(
            SourceRecording(
                recording_id="rec-001",
                title="Night Bus",
                artist="Alder",
                duration_ms=180_000,
                storage_key="sources/rec-001.flac",
                approved_at=datetime.now(timezone.utc),
            )
        )
        for codec, bitrate in (("flac", 0), ("opus", 128)):
            db_session.add(
                EncodedVariant(
                    variant_id=f"rec-001-{codec}-{bitrate}",
                    recording_id="rec-001",
                    codec=codec,
                    bitrate=bitrate,
                    storage_key=f"variants/rec-001-{codec}-{bitrate}.bin",
                )
            )
            db_session.add(VariantOption(codec=codec, bitrate=bitrate, enabled=True))
        survey_config.set_placebo_probability(db_session, 0.0)
        survey_config.set_pairing_weights(
            db_session, {"same_recording": 1, "different_recording": 0}
        )
        db_session.commit()


def answer_payload(round_data: dict, **overrides) -> dict:
    payload = {
        "token_a": round_data["token_a"],
        "token_b": round_data["token_b"],
        "preview_token_a": round_data["preview_token_a"],
        "preview_token_b": round_data["preview_token_b"],
        "selected": "a",
        "transition_mode": round_data["transition_mode"],
        "round_mode": round_data["round_mode"],
        "start_time_ms": round_data["start_time_ms"],
        "segment_duration_ms": round_data["segment_duration_ms"],
        "response_time_ms": 5100,
        "device_id": "device-001",
        "session_id": "session-001",
    }
    payload.update(overrides)
    return payload


class TestSubmitAnswerEndpoint:
    """Test POST /api/answers."""

    def test_returns_201_for_valid_answer(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()

        response = client.post("/api/answers", json=answer_payload(round_data))

        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["answer_id"]
        assert data["playback_token"] is not None
        assert data["playback_position_ms"] == 0

    def test_creates_answer_record(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()

        client.post("/api/answers", json=answer_payload(round_data, selected="b"))

        with Session(engine) as session:
            answers = session.query(Answer).all()
            assert len(answers) == 1
            assert answers[0].selected == "b"
            assert answers[0].pairing_type == "same_recording"
            assert answers[0].device_id == "device-001"
            assert answers[0].session_id == "session-001"
            assert answers[0].response_time_ms == 5100

    def test_round_tokens_consumed(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()

        playback_token = client.post("/api/answers", json=answer_payload(round_data)).json()[
            "playback_token"
        ]

        with Session(engine) as session:
            remaining = {row.token for row in session.query(EphemeralToken).all()}
        assert remaining == {playback_token}

    def test_returns_410_on_replay(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()
        client.post("/api/answers", json=answer_payload(round_data))

        response = client.post("/api/answers", json=answer_payload(round_data))

        assert response.status_code == 410
        assert response.json()["detail"] == "Stream tokens expired or invalid"

    def test_returns_410_when_token_consumed_mid_submission(self, monkeypatch):
        from earshot.db import repo
        from earshot.eval import answers

        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()
        original_resolve = answers.resolve_token

        def resolve_then_lose(session, token, now=None):
            variant_id = original_resolve(session, token, now)
            if token == round_data["token_a"]:
                repo.delete_token(session, token)
                session.commit()
            return variant_id

        monkeypatch.setattr(answers, "resolve_token", resolve_then_lose)
        response = client.post("/api/answers", json=answer_payload(round_data))

        assert response.status_code == 410
        with Session(engine) as session:
            assert session.query(Answer).count() == 0

    def test_returns_410_for_unknown_tokens(self):
        client, _ = create_test_app_and_client()

        response = client.post(
            "/api/answers",
            json={
                "token_a": "unknown-a",
                "token_b": "unknown-b",
                "selected": "a",
                "transition_mode": "gapless",
                "device_id": "device-001",
            },
        )
        assert response.status_code == 410

    def test_returns_400_for_invalid_selection(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()

        response = client.post("/api/answers", json=answer_payload(round_data, selected="tie"))

        assert response.status_code == 400

    def test_returns_400_for_invalid_transition_mode(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()

        response = client.post(
            "/api/answers", json=answer_payload(round_data, transition_mode="crossfade")
        )

        assert response.status_code == 400

    def test_returns_400_for_missing_fields(self):
        client, _ = create_test_app_and_client()

        response = client.post("/api/answers", json={"selected": "a"})

        assert response.status_code == 400

    def test_returns_400_for_empty_device_id(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()

        response = client.post("/api/answers", json=answer_payload(round_data, device_id=""))

        assert response.status_code == 400

    def test_echoes_playback_position(self):
        client, engine = create_test_app_and_client()
        setup_catalog(engine)
        round_data = client.get("/api/rounds/next").json()

        response = client.post(
            "/api/answers", json=answer_payload(round_data, playback_position_ms=7400)
        )

        assert response.json()["playback_position_ms"] == 7400


class TestHealth:
    """Test GET /health."""

    def test_health(self):
        client, _ = create_test_app_and_client()
        assert client.get("/health").json() == {"status": "ok"}
