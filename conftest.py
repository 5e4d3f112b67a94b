import os

os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("SC_SETTINGS_PATH", os.path.join(os.getcwd(), "_pytest_settings.toml"))
