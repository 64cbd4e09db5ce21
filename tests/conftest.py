import pytest

from docvault.client import DocVault
from docvault.core.config import Settings
from docvault.graph.backends import MemoryGraphBackend

PASSWORD = "correct-horse"


@pytest.fixture
def test_settings():
    """Настройки для тестов: быстрый KDF и короткие задержки"""
    return Settings(
        _env_file=None,
        store_backend="memory",
        kdf_iterations=1_000,
        retry_max_attempts=8,
        retry_base_delay=0.01,
        list_timeout=1.0,
        jwt_secret="test-secret",
    )


@pytest.fixture
def backend():
    return MemoryGraphBackend()


async def make_user(backend, settings, alias: str, password: str = PASSWORD) -> DocVault:
    """Пир с зарегистрированным пользователем и готовой сессией"""
    vault = DocVault(backend, settings)
    result = await vault.identity.register_user(alias, password)
    assert result.success, result
    await vault.sessions.wait_ready()
    return vault


@pytest.fixture
async def alice(backend, test_settings):
    vault = await make_user(backend, test_settings, "alice")
    yield vault
    await vault.sessions.sign_out()


@pytest.fixture
async def bob(backend, test_settings):
    vault = await make_user(backend, test_settings, "bob")
    yield vault
    await vault.sessions.sign_out()


@pytest.fixture
def make_vault(backend, test_settings):
    """Фабрика дополнительных пиров на общем бэкенде"""

    async def factory(alias: str, password: str = PASSWORD) -> DocVault:
        return await make_user(backend, test_settings, alias, password)

    return factory
