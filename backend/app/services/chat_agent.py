import json
import logging
from typing import Any, AsyncIterator, Dict, List, Optional

from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
    message_chunk_to_message,
)

from app.services.llm_service import get_llm
from app.services.tools.current_time import CHAT_TOOLS

logger = logging.getLogger(__name__)

MAX_TOOL_ROUNDS = 5

SYSTEM_PROMPT = """あなたは親切なAIアシスタントです。明確で簡潔な回答を提供してください。

重要な指示：
- 現在時刻が必要な場合は、必ずget_current_timeツールを使用してください
- ツールを実行した後は、必ずその結果を基に自然な日本語で回答してください
- ツールの結果だけでなく、ユーザーにとって分かりやすい形で情報を伝えてください
- 例：「現在の時刻は2025年9月17日水曜日の18時26分です。」のように回答してください

日本語で自然に会話してください。"""


def chunk_text(chunk) -> str:
    content = chunk.content
    if isinstance(content, str):
        return content
    # Some providers stream a list of content blocks
    return "".join(
        part.get("text", "") if isinstance(part, dict) else str(part)
        for part in content or []
    )


class ChatAgent:
    """
    The Assistant: streams a reply for a conversation, running tool calls
    (currently just the clock) between model rounds.

    ``stream`` yields plain event dicts; the accumulated reply text is kept
    on ``self.text`` so the caller can persist it once the stream is done.
    """

    def __init__(self, llm=None, tools: Optional[list] = None, max_tool_rounds: int = MAX_TOOL_ROUNDS):
        self.llm = llm if llm is not None else get_llm()
        self.tools = {t.name: t for t in (tools if tools is not None else CHAT_TOOLS)}
        self.model = self.llm.bind_tools(list(self.tools.values()))
        self.max_tool_rounds = max_tool_rounds
        self._parts: List[str] = []

    @property
    def text(self) -> str:
        return "".join(self._parts)

    def build_messages(self, turns: List[Dict[str, str]]) -> List[BaseMessage]:
        messages: List[BaseMessage] = [SystemMessage(content=SYSTEM_PROMPT)]
        for turn in turns:
            if turn["role"] == "user":
                messages.append(HumanMessage(content=turn["content"]))
            elif turn["role"] == "assistant":
                messages.append(AIMessage(content=turn["content"]))
        return messages

    async def run_tool(self, call: Dict[str, Any]) -> Any:
        tool = self.tools.get(call["name"])
        if tool is None:
            logger.warning(f"[ChatAgent] Model requested unknown tool '{call['name']}'")
            return {"error": f"Unknown tool: {call['name']}"}
        try:
            return await tool.ainvoke(call.get("args") or {})
        except Exception as e:
            # Reported back to the model instead of aborting the reply
            logger.error(f"[ChatAgent] Tool '{call['name']}' failed: {e}")
            return {"error": str(e)}

    async def stream(self, turns: List[Dict[str, str]]) -> AsyncIterator[Dict[str, Any]]:
        messages = self.build_messages(turns)

        for round_no in range(self.max_tool_rounds):
            gathered = None
            async for chunk in self.model.astream(messages):
                gathered = chunk if gathered is None else gathered + chunk
                text = chunk_text(chunk)
                if text:
                    self._parts.append(text)
                    yield {"type": "text", "content": text}

            if gathered is None or not gathered.tool_calls:
                return

            messages.append(message_chunk_to_message(gathered))
            for call in gathered.tool_calls:
                logger.info(f"[ChatAgent] Round {round_no + 1}: calling tool {call['name']} {call.get('args')}")
                yield {"type": "tool_call", "id": call.get("id"), "name": call["name"], "args": call.get("args") or {}}

                result = await self.run_tool(call)
                messages.append(ToolMessage(
                    content=json.dumps(result, ensure_ascii=False),
                    tool_call_id=call.get("id") or "",
                    name=call["name"],
                ))
                yield {"type": "tool_result", "id": call.get("id"), "name": call["name"], "result": result}

        logger.warning(f"[ChatAgent] Stopped after {self.max_tool_rounds} tool rounds without a final answer")
