"""
Muzanga - study mentor chat over the Hugging Face Inference API
===============================================================
Keeps the conversation history client-side and sends it as a single
Mistral-instruct prompt string on every turn.

API Reference: https://huggingface.co/docs/api-inference/tasks/text-generation
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import List, Optional

import requests

from config import AppConfig
from log_config import get_logger


log = get_logger(__name__)

FALLBACK_REPLY = "Sorry, I had trouble understanding that. Could you rephrase?"
UNAVAILABLE_REPLY = "Muzanga is not configured right now. Add HF_API_KEY to .env to enable the assistant."

SYSTEM_PROMPT = """\
You are Muzanga, a warm, encouraging, and intelligent digital mentor for the Skutopia Academy online \
learning platform. Muzanga is like a trusted older sibling to students, especially from Zambia and across Africa.

Your tone is supportive, encouraging, down-to-earth but knowledgeable, and patient.

You help students understand school topics, break complex problems into smaller steps, explain concepts, \
offer hints when they are stuck, give career and scholarship advice, share study habits, and explain how \
to use the Skutopia Academy platform (Dashboard, Videos, Flashcards, Quizzes, Mentors, Past Papers, \
Scholarships, Profile).

Do NOT give direct answers or complete solutions to homework or test questions. Help the student learn \
and figure things out. Never give false information; if you don't know, say so. For sensitive or medical \
topics, gently suggest talking to a trusted adult, teacher or counselor.

Use simple, clear language. Relatable Zambian examples are welcome.
"""


@dataclass(frozen=True)
class ChatMessage:
    role: str  # user | assistant
    content: str


@dataclass
class AssistantReply:
    ok: bool
    text: str
    raw: Optional[object] = None


@dataclass
class Conversation:
    messages: List[ChatMessage] = field(default_factory=list)

    def add(self, role: str, content: str) -> None:
        if role not in ("user", "assistant"):
            raise ValueError(f"Unknown role: {role}")
        self.messages.append(ChatMessage(role, content))

    def clear(self) -> None:
        self.messages.clear()


def format_prompt(messages: List[ChatMessage], system_prompt: str = SYSTEM_PROMPT) -> str:
    """
    Mistral-instruct formatting: each user turn wrapped in [INST] ... [/INST],
    assistant turns as plain lines. The system prompt rides in the first user turn.
    """
    parts: List[str] = []
    first_user = True
    for m in messages:
        if m.role == "user":
            content = f"{system_prompt.strip()}\n\n{m.content}" if first_user and system_prompt else m.content
            parts.append(f"[INST] {content} [/INST]\n")
            first_user = False
        elif m.role == "assistant":
            parts.append(f"{m.content}\n")
    return "".join(parts)


def extract_reply(data: object) -> str:
    if isinstance(data, list) and data and isinstance(data[0], dict):
        text = (data[0].get("generated_text") or "").strip()
        return text or FALLBACK_REPLY
    if isinstance(data, dict) and data.get("generated_text"):
        return str(data["generated_text"]).strip() or FALLBACK_REPLY
    return FALLBACK_REPLY


class AssistantClient:
    """
    Hugging Face text-generation client for Muzanga.

    - `ask()` appends the question to the conversation and returns the reply
    - the reply is appended too, so the next turn carries the full history
    - network or API failures return `ok=False` with a readable message
    """

    def __init__(self, cfg: AppConfig, conversation: Optional[Conversation] = None):
        self.cfg = cfg
        self.conversation = conversation or Conversation()
        self._headers = {"Authorization": f"Bearer {cfg.hf_api_key}", "Content-Type": "application/json"}

    def is_configured(self) -> bool:
        return bool(self.cfg.hf_api_key and self.cfg.hf_model_url)

    def reset_conversation(self) -> None:
        self.conversation.clear()

    def generate(self, messages: List[ChatMessage]) -> AssistantReply:
        if not messages:
            raise ValueError("Expected a non-empty message history.")
        if not self.is_configured():
            return AssistantReply(ok=False, text=UNAVAILABLE_REPLY)

        payload = {
            "inputs": format_prompt(messages),
            "parameters": {"max_new_tokens": 250, "return_full_text": False, "temperature": 0.7},
        }
        try:
            resp = requests.post(self.cfg.hf_model_url, json=payload, headers=self._headers, timeout=self.cfg.request_timeout)
        except requests.RequestException as e:
            log.error("Hugging Face request failed: %s", e)
            return AssistantReply(ok=False, text="Muzanga is unreachable right now. Please try again shortly.")
        if resp.status_code >= 300:
            log.error("Hugging Face API error %s: %s", resp.status_code, resp.text[:500])
            return AssistantReply(ok=False, text=f"Muzanga ran into a problem (status {resp.status_code}). Please try again.")
        try:
            data = resp.json()
        except ValueError:
            log.error("Hugging Face returned non-JSON body")
            return AssistantReply(ok=False, text=FALLBACK_REPLY)
        return AssistantReply(ok=True, text=extract_reply(data), raw=data)

    def ask(self, question: str) -> AssistantReply:
        question = question.strip()
        if not question:
            raise ValueError("Question cannot be empty.")
        self.conversation.add("user", question)
        reply = self.generate(self.conversation.messages)
        if reply.ok:
            self.conversation.add("assistant", reply.text)
        else:
            self.conversation.messages.pop()
        return reply


def get_assistant_client(cfg: AppConfig, conversation: Optional[Conversation] = None) -> AssistantClient:
    """Factory function to get a Muzanga client instance."""
    return AssistantClient(cfg, conversation)
