"""Check that the simulator modules import cleanly."""

import importlib
import sys

MODULES = [
    "app.config.settings",
    "app.core.dependencies",
    "app.infrastructure.state_gateway",
    "app.integrations.storage",
    "app.integrations.market_data",
    "app.integrations.notifications",
    "app.modules.positions.engine",
    "app.modules.positions.service",
    "app.modules.positions.router",
    "app.services.position_poller",
    "app.tasks.celery_app",
    "app.main",
]


def check_imports():
    """Import each module and report failures."""
    errors = []

    for name in MODULES:
        try:
            importlib.import_module(name)
            print(f"✓ {name}")
        except Exception as e:
            errors.append(f"✗ {name}: {e}")

    if errors:
        print("\n❌ Import Errors:")
        for error in errors:
            print(error)
        return 1
    else:
        print("\n✅ All imports successful!")
        return 0

if __name__ == "__main__":
    sys.exit(check_imports())
