"""Startup tests for the Tavara.care coordination service."""

from fastapi.testclient import TestClient
from sqlalchemy.orm import configure_mappers

from tavara.db import models
from tavara.main import app


class TestStartup:

    def test_models_map(self):
        """Test every model and relationship configures."""
        configure_mappers()

        assert models.Profile.care_plans.property.mapper.class_ is models.CarePlan
        assert models.Profile.__table__.c.relationship.key == "relationship"

    def test_recipient_relationship_column(self, db, family):
        family.relationship_to_recipient = "Daughter"
        db.commit()

        assert db.query(models.Profile).filter_by(relationship_to_recipient="Daughter").one().id == family.id

    def test_routes_registered(self):
        paths = set(app.openapi()["paths"])

        for expected in (
            "/health",
            "/api/v1/metrics",
            "/api/v1/care-plans",
            "/api/v1/chat/start",
            "/api/v1/auth/whatsapp/verify-code",
            "/api/v1/visits/fees",
            "/api/v1/admin/automatic-assignment",
        ):
            assert expected in paths

    def test_lifespan_initialises_database(self):
        """Test the app starts and serves with its lifespan running."""
        with TestClient(app) as client:
            assert client.get("/health").json()["status"] == "healthy"
