"""Smoke tests for the application factory."""


def test_import_app():
    """Test that the app builds with its catalog and back-office routes."""
    from app.main import create_app

    app = create_app()
    paths = {route.path for route in app.routes}

    assert "/v1/tours/{slug}" in paths
    assert "/v1/admin/tours/bulk" in paths
    assert "/v1/admin/login" in paths
    assert "/metrics" in paths
