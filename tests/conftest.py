"""Pytest configuration for the Pillar Two calculators test suite."""

# Sessions, saved work and the MCP handlers are async
pytest_plugins = ('pytest_asyncio',)


def pytest_configure(config):
    config.addinivalue_line(
        "markers", "asyncio: mark test as an async test"
    )
