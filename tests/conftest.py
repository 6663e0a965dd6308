"""
AppForge - Test Configuration and Fixtures
"""
import os

import pytest

# Keep tests independent of the developer's environment
os.environ['ANTHROPIC_API_KEY'] = 'test-api-key'
os.environ['GEMINI_API_KEY'] = 'test-gemini-key'
os.environ.setdefault('LOG_LEVEL', 'WARNING')

from appforge.modules.orchestrator import AgentConfig, AgentOrchestrator
from appforge.modules.tools import InMemoryToolExecutor

from mocks.scripted_provider import ScriptedProvider


@pytest.fixture
def executor() -> InMemoryToolExecutor:
    """Fresh in-memory project"""
    return InMemoryToolExecutor()


@pytest.fixture
def agent_config() -> AgentConfig:
    """Default limits used by orchestrator tests"""
    return AgentConfig(max_iterations=15, max_backend_calls=100, continuation_batch_size=3, max_plan_retries=1)


@pytest.fixture
def make_orchestrator(agent_config):
    """Factory building an orchestrator around a ScriptedProvider"""
    def _make(turns=None, supported_tools=None, config=None, fallback=None, executor_factory=None):
        provider = ScriptedProvider(turns, supported_tools=supported_tools, fallback=fallback)
        orchestrator = AgentOrchestrator(provider, executor_factory, config or agent_config)
        return orchestrator, provider
    return _make


@pytest.fixture
def sample_files():
    """A small existing Expo project"""
    return {
        'package.json': '{"name": "demo", "main": "expo-router/entry"}',
        'app/_layout.tsx': "import { Stack } from 'expo-router';\nexport default function Layout() {\n  return (<Stack />);\n}\n",
        'README.md': '# Demo\n',
    }
