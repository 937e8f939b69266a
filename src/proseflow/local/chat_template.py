"""Rendering chat history through a model's embedded Jinja chat template."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Mapping

if TYPE_CHECKING:
    from proseflow.models.chat import ChatMessage

CHAT_TEMPLATE_KEY = "tokenizer.chat_template"


class ChatTemplate:
    """Thin wrapper over llama-cpp-python's ``Jinja2ChatFormatter``."""

    def __init__(self, template: str, *, bos_token: str = "", eos_token: str = "") -> None:
        if not template or not template.strip():
            raise ValueError("Chat template is empty")
        self.template = template
        self.bos_token = bos_token
        self.eos_token = eos_token

    @classmethod
    def from_metadata(
        cls, metadata: Mapping[str, Any], *, bos_token: str = "", eos_token: str = ""
    ) -> ChatTemplate | None:
        """Build from GGUF metadata; ``None`` when the model ships no template."""
        template = metadata.get(CHAT_TEMPLATE_KEY)
        if not template:
            return None
        return cls(str(template), bos_token=bos_token, eos_token=eos_token)

    def render(self, messages: list[ChatMessage], *, add_assistant: bool = True, include_bos: bool = True) -> str:
        """Render ``messages``; ``include_bos=False`` for turns appended to a primed context."""
        from llama_cpp.llama_chat_format import Jinja2ChatFormatter

        formatter = Jinja2ChatFormatter(
            template=self.template,
            eos_token=self.eos_token,
            bos_token=self.bos_token if include_bos else "",
            add_generation_prompt=add_assistant,
        )
        payload = [{"role": str(m.role), "content": m.content} for m in messages]
        return formatter(messages=payload).prompt
