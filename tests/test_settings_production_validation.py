from __future__ import annotations

import pytest

from compass_backend.config import Settings


def test_settings_development_allows_defaults():
    cfg = Settings.model_validate({"environment": "development"})
    assert cfg.cors_origins_list() == ["*"]
    assert not cfg.drive_configured()
    assert not cfg.cloudinary_configured()
    assert any("drive" in w for w in cfg.security_warnings())


def test_settings_production_requires_explicit_cors():
    with pytest.raises(Exception) as excinfo:
        Settings.model_validate({"environment": "production"})
    assert "CORS_ALLOW_ORIGINS" in str(excinfo.value)


def test_settings_production_allows_complete_backends():
    cfg = Settings.model_validate(
        {
            "environment": "production",
            "cors_allow_origins": "https://compass.example.com, https://admin.example.com",
            "drive_endpoint_url": "https://s3.example.com",
            "drive_bucket": "lms",
            "drive_access_key_id": "ak",
            "drive_secret_access_key": "sk",
            "cloudinary_cloud_name": "demo",
            "cloudinary_api_key": "key",
            "cloudinary_api_secret": "secret",
        }
    )
    assert cfg.cors_origins_list() == ["https://compass.example.com", "https://admin.example.com"]
    assert cfg.drive_configured()
    assert cfg.cloudinary_configured()
    assert cfg.security_warnings() == []


def test_settings_production_rejects_partial_backends():
    with pytest.raises(Exception) as excinfo:
        Settings.model_validate(
            {
                "environment": "production",
                "cors_allow_origins": "https://compass.example.com",
                "drive_bucket": "lms",
                "cloudinary_api_key": "key",
            }
        )
    msg = str(excinfo.value)
    assert "drive config incomplete" in msg
    assert "DRIVE_SECRET_ACCESS_KEY" in msg
    assert "cloudinary config incomplete" in msg
