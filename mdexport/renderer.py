"""Markdown to HTML body conversion used by the web view backend."""

from __future__ import annotations

import hashlib
import html

from markdown_it import MarkdownIt
from mdit_py_plugins.dollarmath import dollarmath_plugin


class MarkdownRenderer:
    """Converts markdown to an HTML body fragment with math and Mermaid blocks."""

    def __init__(self) -> None:
        self._md = MarkdownIt(
            "commonmark",
            {"html": True, "linkify": False, "typographer": True},
        ).enable("table").enable("strikethrough")
        # Parse $...$ / $$...$$ as dedicated math tokens before markdown
        # emphasis/underscore rules run, preventing TeX corruption.
        self._md.use(dollarmath_plugin)

        default_fence = self._md.renderer.rules["fence"]

        def custom_math_inline(tokens, idx, options, env):
            token = tokens[idx]
            # Keep TeX content raw for client-side typesetting, only escape unsafe chars.
            return f'<span class="mdx-math-inline">${html.escape(token.content)}$</span>'

        def custom_math_block(tokens, idx, options, env):
            token = tokens[idx]
            math_body = (token.content or "").strip("\n")
            return f'<div class="mdx-math-block">$$\n{html.escape(math_body)}\n$$</div>\n'

        def custom_fence(tokens, idx, options, env):
            token = tokens[idx]
            info = token.info.strip().split(maxsplit=1)[0].lower() if token.info else ""
            if info == "mermaid":
                source = self._prepare_mermaid_source(token.content)
                mermaid_hash = hashlib.sha1(source.encode("utf-8", errors="replace")).hexdigest()
                return f'<div class="mermaid" data-mdx-mermaid-hash="{mermaid_hash}">\n{html.escape(source)}\n</div>\n'
            return default_fence(tokens, idx, options, env)

        self._md.renderer.rules["fence"] = custom_fence
        self._md.renderer.rules["math_inline"] = custom_math_inline
        self._md.renderer.rules["math_block"] = custom_math_block

    @staticmethod
    def _prepare_mermaid_source(code: str) -> str:
        """Normalize Mermaid source for stable hashing."""
        return code.replace("\r\n", "\n").strip("\n")

    def render_body(self, markdown_text: str) -> str:
        return self._md.render(markdown_text, {})
