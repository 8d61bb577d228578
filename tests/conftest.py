import json
from datetime import datetime, timezone
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from config.settings import settings
from services.providers.memory_provider import MemoryDataProvider

SNAPSHOT_FILE = Path(__file__).resolve().parent.parent / "data" / "demo_snapshot.json"

# 데모 스냅샷 기준 "현재" (모든 평가 마감일 이전)
NOW = datetime(2026, 4, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def snapshot():
    with open(SNAPSHOT_FILE, encoding="utf-8") as f:
        return json.load(f)


@pytest.fixture
def memory_provider(snapshot):
    return MemoryDataProvider(snapshot)


@pytest.fixture
def app_module(monkeypatch):
    # 인증 토큰 미설정 + dev → 인증 없이 통과
    monkeypatch.setattr(settings, "API_INTERNAL_TOKEN", "")
    monkeypatch.setattr(settings, "ENV", "dev")

    import main

    yield main
    main.app.dependency_overrides.clear()


@pytest.fixture
def client(app_module, memory_provider):
    from dependencies.providers import get_data_provider

    app_module.app.dependency_overrides[get_data_provider] = lambda: memory_provider
    with TestClient(app_module.app) as c:
        yield c
