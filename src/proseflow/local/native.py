"""Stateful conversations over an in-process llama.cpp model.

llama-cpp-python exposes a single decoding context per loaded model. Each
``LlamaConversation`` therefore owns a saved ``LlamaState`` snapshot; the
model swaps snapshots in and out whenever a different conversation becomes
active, so a reused session keeps its KV-cache and only new tokens have to
be evaluated. Callers must serialize access (the local provider holds a
single inference permit while it drives a conversation).
"""

from __future__ import annotations

import codecs
import logging
from pathlib import Path
from typing import TYPE_CHECKING, Any, Protocol, Sequence, runtime_checkable

from proseflow.local.chat_template import ChatTemplate

if TYPE_CHECKING:
    from proseflow.models.chat import ChatMessage
    from proseflow.models.settings import ProviderSettings

logger = logging.getLogger(__name__)

_EOG_METADATA_KEYS = ("tokenizer.ggml.eot_token_id", "tokenizer.ggml.eom_token_id")


# ---------------------------------------------------------------------------
# Contracts used by the local provider and the session manager
# ---------------------------------------------------------------------------

@runtime_checkable
class IConversation(Protocol):
    """Native conversation handle. Both flags may be set again on later iterations."""

    @property
    def token_count(self) -> int: ...

    @property
    def requires_inference(self) -> bool: ...

    @property
    def requires_sampling(self) -> bool: ...

    def prompt(self, tokens: Sequence[int]) -> None: ...

    def infer(self) -> None: ...

    def sample(self, temperature: float) -> int: ...

    def dispose(self) -> None: ...


@runtime_checkable
class ILocalModel(Protocol):
    """A loaded local model able to host conversations."""

    label: str

    def create_conversation(self) -> IConversation: ...

    def render_chat(self, messages: list[ChatMessage], *, add_assistant: bool, include_bos: bool) -> str: ...

    def tokenize(self, text: str, *, add_bos: bool) -> list[int]: ...

    def token_to_bytes(self, token: int) -> bytes: ...

    def is_end_of_generation(self, token: int) -> bool: ...

    def is_control(self, token: int) -> bool: ...

    def close(self) -> None: ...


# ---------------------------------------------------------------------------
# Streaming token decoder
# ---------------------------------------------------------------------------

class TokenDecoder:
    """Turns token byte pieces into text without splitting multi-byte characters."""

    def __init__(self, model: ILocalModel) -> None:
        self._model = model
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")

    def add(self, token: int) -> str:
        return self._decoder.decode(self._model.token_to_bytes(token))

    def flush(self) -> str:
        return self._decoder.decode(b"", final=True)


# ---------------------------------------------------------------------------
# llama-cpp-python implementation
# ---------------------------------------------------------------------------

class LlamaConversation:
    """One conversation bound to a ``LlamaModel``'s shared context."""

    def __init__(self, model: LlamaModel) -> None:
        self._model = model
        self._state: Any = None  # llama_cpp.LlamaState snapshot while suspended
        self._pending: list[int] = []
        self._token_count = 0
        self._requires_sampling = False
        self._disposed = False

    @property
    def token_count(self) -> int:
        return self._token_count

    @property
    def requires_inference(self) -> bool:
        return bool(self._pending)

    @property
    def requires_sampling(self) -> bool:
        return self._requires_sampling

    @property
    def disposed(self) -> bool:
        return self._disposed

    def prompt(self, tokens: Sequence[int]) -> None:
        self._ensure_alive()
        self._pending.extend(int(t) for t in tokens)
        self._requires_sampling = False

    def infer(self) -> None:
        self._ensure_alive()
        if not self._pending:
            return
        self._model.activate(self)
        batch, self._pending = self._pending, []
        self._model.llm.eval(batch)
        self._token_count += len(batch)
        self._requires_sampling = True

    def sample(self, temperature: float) -> int:
        self._ensure_alive()
        if not self._requires_sampling:
            raise RuntimeError("Conversation has no fresh logits to sample from")
        self._model.activate(self)
        token = int(self._model.llm.sample(temp=temperature))
        self._requires_sampling = False
        return token

    def suspend(self) -> None:
        """Snapshot the shared context so another conversation can use it."""
        self._state = self._model.llm.save_state()

    def restore(self) -> None:
        if self._state is None:
            self._model.llm.reset()
        else:
            self._model.llm.load_state(self._state)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._model.release(self)
        self._state = None
        self._pending = []

    def __enter__(self) -> LlamaConversation:
        return self

    def __exit__(self, *exc: object) -> None:
        self.dispose()

    def _ensure_alive(self) -> None:
        if self._disposed:
            raise RuntimeError("Conversation has been disposed")


class LlamaModel:
    """Wrapper around ``llama_cpp.Llama`` exposing the ``ILocalModel`` contract."""

    def __init__(self, llm: Any, label: str, template: ChatTemplate | None = None) -> None:
        self.llm = llm
        self.label = label
        self._template = template
        self._active: LlamaConversation | None = None
        self._eog_tokens = self._collect_eog_tokens()

    @classmethod
    def load(cls, settings: ProviderSettings) -> LlamaModel:
        """Load GGUF weights from ``settings.local_model_path`` (blocking)."""
        from llama_cpp import Llama

        llm = Llama(
            model_path=settings.local_model_path,
            n_ctx=settings.local_context_size if settings.local_context_size > 0 else 4096,
            n_gpu_layers=-1 if settings.prefer_gpu else 0,
            n_threads=settings.local_cpu_cores if settings.local_cpu_cores > 0 else None,
            use_mmap=settings.local_memory_map,
            use_mlock=settings.local_memory_lock,
            flash_attn=settings.local_flash_attention,
            verbose=False,
        )
        model = cls(llm, Path(settings.local_model_path).stem)
        model._template = ChatTemplate.from_metadata(
            getattr(llm, "metadata", None) or {},
            bos_token=model._special_text(llm.token_bos()),
            eos_token=model._special_text(llm.token_eos()),
        )
        return model

    # ---- conversation bookkeeping ----

    def create_conversation(self) -> LlamaConversation:
        return LlamaConversation(self)

    def activate(self, conversation: LlamaConversation) -> None:
        if self._active is conversation:
            return
        if self._active is not None:
            self._active.suspend()
        conversation.restore()
        self._active = conversation

    def release(self, conversation: LlamaConversation) -> None:
        if self._active is conversation:
            self._active = None

    # ---- prompt / token helpers ----

    def render_chat(self, messages: list[ChatMessage], *, add_assistant: bool, include_bos: bool) -> str:
        if self._template is None:
            raise ValueError(f"Model {self.label!r} has no embedded chat template")
        return self._template.render(messages, add_assistant=add_assistant, include_bos=include_bos)

    def tokenize(self, text: str, *, add_bos: bool) -> list[int]:
        return list(self.llm.tokenize(text.encode("utf-8"), add_bos=add_bos, special=True))

    def token_to_bytes(self, token: int) -> bytes:
        return self.llm.detokenize([token])

    def is_end_of_generation(self, token: int) -> bool:
        return token in self._eog_tokens

    def is_control(self, token: int) -> bool:
        # control tokens only render when special tokens are requested
        return not self.llm.detokenize([token]) and bool(self._special_bytes(token))

    def close(self) -> None:
        self._active = None
        close = getattr(self.llm, "close", None)
        if close is not None:
            close()
        self.llm = None

    def _collect_eog_tokens(self) -> set[int]:
        tokens = {int(self.llm.token_eos())}
        metadata = getattr(self.llm, "metadata", None) or {}
        for key in _EOG_METADATA_KEYS:
            value = metadata.get(key)
            if value is not None and str(value).lstrip("-").isdigit():
                tokens.add(int(value))
        tokens.discard(-1)
        return tokens

    def _special_bytes(self, token: int) -> bytes:
        return self.llm.detokenize([token], special=True)

    def _special_text(self, token: int) -> str:
        if token < 0:
            return ""
        return self._special_bytes(token).decode("utf-8", errors="ignore")
