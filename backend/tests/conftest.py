"""
Pytest configuration and fixtures for backend tests.
"""

import asyncio
import os
import tempfile

# Settings are read at import time, so the test environment must be in place first.
_TEST_DIR = tempfile.mkdtemp(prefix="octree_tests_")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{_TEST_DIR}/test.db"
os.environ["LOG_FILE"] = os.path.join(_TEST_DIR, "test.log")
os.environ["AUTOSAVE_DEBOUNCE_SECONDS"] = "30"
os.environ["COMPILE_DEBOUNCE_SECONDS"] = "30"
os.environ["DEEPSEEK_API_KEY"] = "test-deepseek-key"
os.environ["OPENAI_API_KEY"] = "test-openai-key"

import pytest
from typing import AsyncGenerator
from fastapi.testclient import TestClient
from sqlalchemy.ext.asyncio import AsyncSession

from main import app
from octree.core.database import AsyncSessionLocal, Base, engine, drop_tables


@pytest.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with AsyncSessionLocal() as session:
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(scope="function")
def client() -> TestClient:
    """Create a test client; the app lifespan creates the tables."""
    with TestClient(app) as test_client:
        yield test_client

    asyncio.run(drop_tables())


@pytest.fixture
def latex_document() -> str:
    return "\n".join([
        "\\documentclass{article}",
        "\\begin{document}",
        "Hello",
        "Second line",
        "\\end{document}",
    ])
