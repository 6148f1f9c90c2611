"""Pytest configuration for CaseDesk Trash."""


def pytest_configure(config):
    """Configure pytest with custom settings."""
    config.addinivalue_line(
        "markers", "cascade: tests that exercise permanent deletion cascades"
    )
