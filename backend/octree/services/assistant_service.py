"""
Octra, the LaTeX assistant: builds the chat conversation for an editing request.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

from octree.core.config import settings
from octree.services.llm_service import LLMService, llm_service

SYSTEM_PROMPT = """You are Octra, a LaTeX expert AI assistant. Help users write and format their LaTeX documents effectively. Be clear and helpful.

When you propose a change to the document, answer with one or more fenced code blocks tagged latex-diff. Each block holds exactly one hunk:

```latex-diff
@@ -<start>,<count> +<start>,<count> @@
-line being removed
+line being added
```

Rules:
1. Line numbers refer to the numbered document you were given.
2. Do not copy the line number prefixes into the diff body.
3. Keep every change minimal; use one block per contiguous change.
4. Follow the code blocks with a brief explanation."""


def number_lines(content: str) -> str:
    return "\n".join(f"{i}: {line}" for i, line in enumerate((content or "").split("\n"), start=1))


class AssistantService:
    def __init__(self, llm: Optional[LLMService] = None):
        self.llm = llm or llm_service

    def build_messages(
        self,
        *,
        file_content: str,
        prompt: str,
        history: Sequence[Dict[str, str]] = (),
        selection: Optional[str] = None,
    ) -> List[Dict[str, str]]:
        parts = [f"Current document (numbered):\n---\n{number_lines(file_content)}\n---"]
        if selection:
            parts.append(f"Selected text:\n---\n{selection}\n---")
        parts.append(prompt)

        keep = settings.ASSISTANT_HISTORY_MESSAGES
        recent = list(history)[-keep:] if keep > 0 else []
        return [
            {"role": "system", "content": SYSTEM_PROMPT},
            *({"role": m["role"], "content": m["content"]} for m in recent),
            {"role": "user", "content": "\n\n".join(parts)},
        ]

    async def respond(
        self,
        *,
        file_content: str,
        prompt: str,
        history: Sequence[Dict[str, str]] = (),
        selection: Optional[str] = None,
    ) -> str:
        messages = self.build_messages(
            file_content=file_content, prompt=prompt, history=history, selection=selection
        )
        return await self.llm.chat(
            messages,
            model=settings.ASSISTANT_MODEL,
            provider="deepseek",
            temperature=settings.ASSISTANT_TEMPERATURE,
            max_tokens=settings.ASSISTANT_MAX_TOKENS,
        )


assistant_service = AssistantService()
