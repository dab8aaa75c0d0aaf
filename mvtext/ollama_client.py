"""Ollama REST API wrapper for LLM translation."""

import logging
import re

import requests

from . import CONTROL_CODE_RE, JAPANESE_RE
from .errors import TranslationError

log = logging.getLogger(__name__)


# Japanese bracket pairs → Western equivalents
_JP_BRACKETS = {
    '「': '"', '」': '"',   # 「 」 → " "
    '『': '"', '』': '"',   # 『 』 → " "
    '【': '[', '】': ']',   # 【 】 → [ ]
    '（': '(', '）': ')',   # （ ） → ( )
}

# Qwen3 thinking blocks (<think>...</think>), emitted when the model's
# chain-of-thought mode leaks through despite "think": false.
_THINK_RE = re.compile(r'<think>.*?</think>\s*', re.DOTALL)

# Translator notes/commentary the LLM sometimes appends after the text.
_NOTE_STRIP_RE = re.compile(
    r'(?:'
    r'\n\s*[-—–]{2,}\s*\n.*'
    r'|\n\s*\*{2,}\s*\n.*'
    r'|\n\s*(?:Note|Notes|Translation [Nn]ote|Translator\'?s? [Nn]ote|TL [Nn]ote)s?\s*[:：].*'
    r'|\n\s*[(\[](?:Note|Notes|Translation [Nn]ote|TL [Nn]ote)s?\s*[:：].*?[)\]]\s*$'
    r')',
    re.DOTALL | re.IGNORECASE,
)

_PLACEHOLDER_RE = re.compile(r'«CODE\d+»')

SYSTEM_PROMPT = """You are a professional Japanese to English translator for RPG Maker games.

Rules:
- Translate the text faithfully and completely into natural English suitable for a game.
- The text may contain opaque markers like «CODE1», «CODE2». These are engine tags. Output them EXACTLY as-is and never translate or remove them.
- Keep the line break structure of the original.
- Output ONLY the translated text. No explanations, notes or commentary.
- Proper nouns and text that is already English stay as they are.
- Match the tone of the original (casual, formal, dramatic).
- Keep character name translations consistent.
- Preserve Japanese honorifics such as -san, -chan, -sama, -senpai."""

# Human-readable labels for the kinds of text the extractor produces
_FIELD_HINTS = {
    "dialog": "dialogue line",
    "choice": "player choice option",
    "speaker_name": "speaker name shown above a message",
    "name": "name",
    "nickname": "character nickname",
    "profile": "character profile/biography",
    "description": "item or skill description",
    "message1": "battle message",
    "message2": "battle message",
    "message3": "battle message",
    "message4": "battle message",
    "gameTitle": "game title",
    "currencyUnit": "currency name",
    "displayName": "map location name",
    "note": "developer note",
}


def build_system_prompt(source_language: str = "Japanese",
                        target_language: str = "English") -> str:
    """Main translation prompt for a language pair."""
    return (SYSTEM_PROMPT
            .replace("English", target_language)
            .replace("Japanese to", f"{source_language} to"))


class OllamaClient:
    """Client for Ollama's local LLM REST API."""

    def __init__(self, base_url: str = "http://localhost:11434", model: str = "qwen3:14b",
                 timeout: int = 120):
        self.base_url = base_url.rstrip("/")
        self.model = model
        self.timeout = timeout
        self.source_language = "Japanese"
        self.target_language = "English"

    @property
    def origin(self) -> str:
        """Label stored on every unit this client translates."""
        return f"ollama:{self.model}"

    def _chat(self, *, messages: list, stream: bool = False,
              timeout: int = 120, **kwargs) -> dict:
        """Send a chat request to Ollama with thinking mode disabled.

        Extra kwargs are merged into the request payload (e.g. ``options``).
        """
        payload = {
            "model": self.model,
            "messages": messages,
            "stream": stream,
            "think": False,   # Disable Qwen3 chain-of-thought
            **kwargs,
        }
        r = requests.post(
            f"{self.base_url}/api/chat",
            json=payload,
            timeout=timeout,
        )
        r.raise_for_status()
        return r.json()

    def is_available(self) -> bool:
        """Check if Ollama server is reachable."""
        try:
            r = requests.get(f"{self.base_url}/api/tags", timeout=5)
            return r.status_code == 200
        except (requests.RequestException, ValueError, OSError):
            return False

    def list_models(self) -> list:
        """Get list of available model names from Ollama."""
        try:
            r = requests.get(f"{self.base_url}/api/tags", timeout=10)
            r.raise_for_status()
            data = r.json()
            return [m["name"] for m in data.get("models", [])]
        except (requests.RequestException, KeyError, ValueError, OSError):
            return []

    # ── Placeholder system ──────────────────────────────────────

    @staticmethod
    def _strip_thinking(text: str) -> str:
        """Remove Qwen3 <think>...</think> reasoning blocks from output."""
        return _THINK_RE.sub('', text).strip()

    @staticmethod
    def _strip_notes(text: str) -> str:
        """Remove translator notes/commentary the LLM sometimes appends."""
        return _NOTE_STRIP_RE.sub('', text).rstrip()

    @staticmethod
    def _contains_japanese(text: str) -> bool:
        """Check if text still contains Japanese, ignoring «CODEn» placeholders."""
        return bool(JAPANESE_RE.search(_PLACEHOLDER_RE.sub('', text)))

    @staticmethod
    def _extract_codes(text: str) -> tuple:
        """Replace control codes with opaque placeholders.

        Returns:
            (cleaned_text, mapping) where mapping is {"«CODE1»": "\\C[2]", ...}
        """
        mapping = {}
        counter = [0]

        def _replace(m):
            counter[0] += 1
            key = f"«CODE{counter[0]}»"
            mapping[key] = m.group(0)
            return key

        cleaned = CONTROL_CODE_RE.sub(_replace, text)
        return cleaned, mapping

    @staticmethod
    def _restore_codes(text: str, mapping: dict) -> str:
        """Put control codes back from placeholders."""
        for key, code in mapping.items():
            text = text.replace(key, code)
        return text

    @staticmethod
    def _convert_jp_brackets(text: str) -> str:
        for jp, western in _JP_BRACKETS.items():
            text = text.replace(jp, western)
        return text

    def _build_user_message(self, clean_text: str, code_map: dict, field: str = "") -> str:
        parts = []
        if code_map:
            parts.append(
                "IMPORTANT: The text contains code markers like «CODE1», «CODE2». "
                "They are engine formatting tags, not names or variables. "
                "Output them exactly as-is."
            )
        if field:
            if field.startswith("terms"):
                parts.append("Content type: menu/system term")
            else:
                parts.append(f"Content type: {_FIELD_HINTS.get(field, field)}")
        parts.append(f"Translate this:\n{clean_text}")
        return "\n\n".join(parts)

    def _postprocess_result(self, result: str, code_map: dict) -> str:
        """Strip thinking/notes, restore control codes."""
        result = self._strip_thinking(result)
        result = self._strip_notes(result)
        if code_map:
            result = self._restore_codes(result, code_map)
        return result

    def translate(self, text: str, field: str = "", source_language: str = None,
                  target_language: str = None) -> str:
        """Translate one text with the configured model.

        Args:
            text: Source text, control codes included.
            field: Kind of text (``"dialog"``, ``"name"``, ...), used as a hint.
            source_language: Defaults to ``self.source_language``.
            target_language: Defaults to ``self.target_language``.

        Returns:
            The translated text with control codes restored.

        Raises:
            TranslationError: the server could not be reached, answered with
                an error status, or returned an empty translation.
        """
        if not text or not text.strip():
            return ""
        source = source_language or self.source_language
        target = target_language or self.target_language

        clean_text, code_map = self._extract_codes(text)
        if target != "Japanese":
            clean_text = self._convert_jp_brackets(clean_text)

        system_prompt = build_system_prompt(source, target)
        user_msg = self._build_user_message(clean_text, code_map, field)
        messages = [
            {"role": "system", "content": system_prompt},
            {"role": "user", "content": user_msg},
        ]
        options = {"temperature": 0, "seed": 42, "num_predict": 1024, "num_ctx": 4096}

        try:
            data = self._chat(messages=messages, timeout=self.timeout, options=options)
            result = data.get("message", {}).get("content", "").strip()
            if not self._strip_thinking(result):
                raise TranslationError("Ollama returned empty translation")
            result = self._postprocess_result(result, code_map)

            # One retry when Japanese source text leaked into a non-Japanese target
            if source == "Japanese" and target != "Japanese" and self._contains_japanese(result):
                log.info("Translation contains Japanese, retrying with stronger prompt")
                retry_msg = (
                    "Your translation still contains Japanese characters. "
                    f"Translate ALL of it into {target}.\n\n"
                    f"Fix this translation:\n{result}"
                )
                messages_retry = messages + [
                    {"role": "assistant", "content": result},
                    {"role": "user", "content": retry_msg},
                ]
                try:
                    data2 = self._chat(messages=messages_retry, timeout=self.timeout,
                                       options=options)
                    retry_result = data2.get("message", {}).get("content", "").strip()
                    if retry_result:
                        result = self._postprocess_result(retry_result, code_map)
                except requests.RequestException as exc:
                    log.debug("Japanese-retry failed, keeping first result: %s", exc)

            return result
        except (requests.RequestException, ValueError) as e:
            raise TranslationError(f"Ollama API error: {e}") from e
