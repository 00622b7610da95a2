"""
Test script to verify platform admin initialization
Run this to test the startup seeding without starting the full server
"""

from quiz_engine.core.config import settings
from quiz_engine.core.init import initialize_application
from quiz_engine.models.user import User


def test_admin_initialization(db):
    """A fresh database gets exactly one platform admin"""
    assert db.query(User).filter(User.role == "admin").count() == 0

    initialize_application(db)

    admins = db.query(User).filter(User.role == "admin").all()
    assert len(admins) == 1
    assert admins[0].email == settings.admin_default_email
    assert admins[0].is_active is True


def test_admin_initialization_is_idempotent(db, admin):
    """An existing admin is kept and no second one is created"""
    initialize_application(db)
    initialize_application(db)

    admins = db.query(User).filter(User.role == "admin").all()
    assert [a.id for a in admins] == [admin.id]


def test_lifespan_runs_initialization(db):
    """Starting the app creates the tables and seeds the admin"""
    from fastapi.testclient import TestClient

    from main import app

    with TestClient(app) as client:
        assert client.get("/").status_code == 200

    assert db.query(User).filter(User.role == "admin").count() == 1


def test_settings_parse_role_lists_and_ignore_unknown_keys():
    """Comma-separated roles are split and stray keys are not kept"""
    from quiz_engine.core.config import Settings

    loaded = Settings(authoring_roles="admin, instructor,", timezone="UTC")

    assert loaded.authoring_roles == ["admin", "instructor"]
    assert not hasattr(loaded, "timezone")
    for removed in ("app_url", "timezone", "db_connection", "authorization_roles"):
        assert removed not in Settings.model_fields
