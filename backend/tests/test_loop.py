"""Agent loop tests with a scripted provider and a temporary SQLite store."""
from __future__ import annotations

import json
import tempfile
import unittest
from pathlib import Path
from unittest.mock import AsyncMock

from src.coding_agent.config import BackendSettings, ProviderSettings
from src.coding_agent.db import SQLiteStorage
from src.coding_agent.executor import ToolExecutor
from src.coding_agent.loop import MAX_ITERATIONS_ERROR, CodingAgent
from src.coding_agent.models import ProviderResponse, ToolCall, ToolResultBlock, ToolUseBlock, Turn
from src.coding_agent.providers import LLMProvider, ModelProvider, OpenAIProvider
from src.coding_agent.tools import get_tool_definitions


class ScriptedProvider(LLMProvider):
    """Returns queued responses (or raises queued exceptions) and records every history it saw."""

    provider = ModelProvider.ANTHROPIC

    def __init__(self, script, repeat_last: bool = False) -> None:
        super().__init__(BackendSettings(model="fake-model"))
        self.script = list(script)
        self.repeat_last = repeat_last
        self.seen: list[list[Turn]] = []

    async def generate_response(self, history, *, tools, system_prompt, model=None):
        self.seen.append([t.model_copy(deep=True) for t in history])
        if self.repeat_last and len(self.script) == 1:
            step = self.script[0]
        else:
            step = self.script.pop(0)
        if isinstance(step, Exception):
            raise step
        return step


def tool_response(*calls: ToolCall, text: str = "") -> ProviderResponse:
    return ProviderResponse(content=text, tool_calls=list(calls), stop_reason="tool_use")


class AgentLoopTestCase(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        base = Path(self._tmp.name).resolve()
        self.root = base / "project"
        (self.root / "server" / "tools").mkdir(parents=True)
        (self.root / "server" / "tools" / "bash.ts").write_text("")
        (self.root / "server" / "tools" / "git.ts").write_text("")
        self.storage = SQLiteStorage(base / "agent.db")
        self.session = await self.storage.create_session(project_path=str(self.root))

    async def asyncTearDown(self) -> None:
        self.storage.close()
        self._tmp.cleanup()

    def make_agent(self, provider: LLMProvider, **kwargs) -> CodingAgent:
        return CodingAgent(
            self.session.id,
            self.storage,
            provider=provider,
            executor=ToolExecutor(project_root=self.root),
            system_prompt="You are a test agent.",
            tools=get_tool_definitions(include_git=False),
            **kwargs,
        )

    async def collect(self, agent: CodingAgent, text: str) -> list[dict]:
        return [event.to_wire() async for event in agent.process_message(text)]


class TestSuccessfulCycles(AgentLoopTestCase):
    async def test_list_files_then_answer(self) -> None:
        provider = ScriptedProvider(
            [
                tool_response(ToolCall(id="c1", name="list_files", input={"directory": "server/tools"})),
                ProviderResponse(content="There are two tool files."),
            ]
        )
        agent = self.make_agent(provider)
        events = await self.collect(agent, "list files in the tools directory")

        self.assertEqual(
            [e["type"] for e in events],
            ["model_info", "tool_use", "tool_result", "response", "complete"],
        )
        self.assertEqual(events[0], {"type": "model_info", "modelProvider": "anthropic", "modelName": "fake-model"})
        self.assertEqual(events[1]["tool"], "list_files")
        self.assertEqual(events[1]["input"], {"directory": "server/tools"})
        result = events[2]["result"]
        self.assertTrue(result["success"])
        self.assertIn("_executionTime", result)
        self.assertEqual([f["name"] for f in result["files"]], ["bash.ts", "git.ts"])
        self.assertEqual(events[3]["content"], "There are two tool files.")

        session = await self.storage.get_session(self.session.id)
        self.assertEqual(session.status, "completed")
        messages = await self.storage.get_messages(self.session.id)
        self.assertEqual([(m.role, m.content) for m in messages], [
            ("user", "list files in the tools directory"),
            ("assistant", "There are two tool files."),
        ])
        [execution] = await self.storage.get_tool_executions(self.session.id)
        self.assertEqual(execution.tool_name, "list_files")
        self.assertTrue(execution.success)

    async def test_second_call_sees_paired_tool_result(self) -> None:
        provider = ScriptedProvider(
            [
                tool_response(
                    ToolCall(id="a", name="read_file", input={"file_path": "missing.txt"}),
                    ToolCall(id="b", name="list_files", input={}),
                    text="Checking two things.",
                ),
                ProviderResponse(content="Done."),
            ]
        )
        agent = self.make_agent(provider)
        events = await self.collect(agent, "go")

        self.assertEqual(
            [e["type"] for e in events],
            ["model_info", "thinking", "tool_use", "tool_result", "tool_use", "tool_result", "response", "complete"],
        )
        self.assertEqual([e["tool"] for e in events if e["type"] == "tool_use"], ["read_file", "list_files"])

        second_history = provider.seen[1]
        assistant, results = second_history[-2], second_history[-1]
        use_ids = [b.id for b in assistant.blocks() if isinstance(b, ToolUseBlock)]
        result_blocks = [b for b in results.blocks() if isinstance(b, ToolResultBlock)]
        self.assertEqual(use_ids, ["a", "b"])
        self.assertEqual([b.tool_use_id for b in result_blocks], ["a", "b"])
        self.assertTrue(result_blocks[0].is_error)
        self.assertFalse(json.loads(result_blocks[0].content)["success"])

    async def test_unknown_tool_does_not_stop_loop(self) -> None:
        provider = ScriptedProvider(
            [tool_response(ToolCall(id="x", name="nope", input={})), ProviderResponse(content="ok")]
        )
        events = await self.collect(self.make_agent(provider), "hi")
        tool_result = next(e for e in events if e["type"] == "tool_result")
        self.assertEqual(tool_result["result"]["error"], "Unknown tool: nope")
        self.assertEqual(events[-1]["type"], "complete")

    async def test_empty_final_text_skips_response(self) -> None:
        provider = ScriptedProvider([ProviderResponse(content="")])
        events = await self.collect(self.make_agent(provider), "hi")
        self.assertEqual([e["type"] for e in events], ["model_info", "complete"])


class TestTerminalFailures(AgentLoopTestCase):
    async def test_backend_error_stops_loop(self) -> None:
        message = "Error code: 401 - {'type': 'authentication_error', 'message': 'invalid x-api-key'}"
        provider = ScriptedProvider([RuntimeError(message), ProviderResponse(content="never")])
        events = await self.collect(self.make_agent(provider), "hi")

        self.assertEqual([e["type"] for e in events], ["model_info", "error"])
        self.assertEqual(events[1]["error"], message)
        self.assertEqual(len(provider.seen), 1)
        session = await self.storage.get_session(self.session.id)
        self.assertEqual(session.status, "error")

    async def test_iteration_cap(self) -> None:
        provider = ScriptedProvider(
            [tool_response(ToolCall(id="loop", name="list_files", input={}))], repeat_last=True
        )
        events = await self.collect(self.make_agent(provider, max_iterations=3), "loop forever")

        self.assertEqual(len(provider.seen), 3)
        self.assertEqual(sum(1 for e in events if e["type"] == "tool_use"), 3)
        self.assertEqual(events[-1], {"type": "error", "error": MAX_ITERATIONS_ERROR})
        session = await self.storage.get_session(self.session.id)
        self.assertEqual(session.status, "completed")

    async def test_failure_mid_tools_keeps_history_paired(self) -> None:
        provider = ScriptedProvider(
            [
                tool_response(
                    ToolCall(id="t1", name="list_files", input={}),
                    ToolCall(id="t2", name="list_files", input={}),
                )
            ]
        )
        agent = self.make_agent(provider)
        self.storage.log_tool_execution = AsyncMock(side_effect=RuntimeError("disk full"))
        events = await self.collect(agent, "hi")

        self.assertEqual(events[-1], {"type": "error", "error": "disk full"})
        last = agent.get_conversation_history()[-1]
        self.assertEqual(last.role, "user")
        self.assertEqual([b.tool_use_id for b in last.blocks()], ["t1", "t2"])


class TestSessionState(AgentLoopTestCase):
    async def test_load_from_session_restores_text_turns(self) -> None:
        await self.storage.add_message(self.session.id, "user", "hello")
        await self.storage.add_message(self.session.id, "assistant", "hi there")
        await self.storage.add_message(self.session.id, "system", "ignored")
        agent = self.make_agent(ScriptedProvider([]))
        await agent.load_from_session()
        self.assertEqual(
            [(t.role, t.content) for t in agent.get_conversation_history()],
            [("user", "hello"), ("assistant", "hi there")],
        )

    async def test_set_model_provider_keeps_history(self) -> None:
        settings = ProviderSettings(openai=BackendSettings(api_key="k", model="gpt-test"))
        provider = ScriptedProvider([ProviderResponse(content="first answer")])
        agent = self.make_agent(provider, settings=settings)
        await self.collect(agent, "hello")
        before = agent.get_conversation_history()

        agent.set_model_provider("openai")
        self.assertIsInstance(agent.provider, OpenAIProvider)
        self.assertEqual(agent.get_model_info(), {"provider": "openai", "model": "gpt-test", "name": "gpt-test"})
        self.assertEqual(agent.get_conversation_history(), before)

        agent.set_model_provider("openai", "gpt-4o")
        self.assertEqual(agent.get_model_info()["name"], "GPT-4o")


if __name__ == "__main__":
    unittest.main()
