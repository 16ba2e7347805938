"""Markdown + LaTeX rendering helpers shared by Qt and web clients.

Question content goes through the same markdown-it pipeline for the
invigilator console (QWebEngineView) and the learner page; MathJax typesets
the ``$...$`` and ``$$...$$`` spans at display time in both.
"""

from __future__ import annotations

from dataclasses import dataclass, field
import html

from markdown_it import MarkdownIt

from exam_app.constants.about import APP_NAME

_MATHJAX_SCRIPT = (
    "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"
)
_DEFAULT_FONT_SIZE = 14


@dataclass(slots=True)
class MarkdownMathRenderer:
    """Converts markdown-with-math into HTML fragments or full documents."""

    enable_html: bool = False
    _markdown: MarkdownIt = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self._markdown = (
            MarkdownIt("commonmark", {"html": self.enable_html})
            .enable("table")
            .enable("strikethrough")
        )

    def render_fragment(self, markdown_text: str) -> str:
        """Render a markdown string into an HTML fragment."""

        sanitized = markdown_text.strip()
        if not sanitized:
            return "<p><em>No content provided.</em></p>"
        return self._markdown.render(sanitized)

    def render_inline(self, markdown_text: str) -> str:
        """Render a short label (an option, a badge) without the paragraph wrapper."""
        return self._markdown.renderInline(markdown_text.strip())

    def wrap_with_mathjax(self, body_html: str, title: str = APP_NAME, font_size: int = _DEFAULT_FONT_SIZE) -> str:
        """Wrap a fragment inside a minimal HTML document that loads MathJax."""

        return f"""<!doctype html>
<html lang=\"en\">
  <head>
    <meta charset=\"utf-8\" />
    <title>{html.escape(title)}</title>
    <meta name=\"viewport\" content=\"width=device-width, initial-scale=1\" />
    <style>
      body {{ font-family: 'Segoe UI', system-ui, sans-serif; margin: 0; padding: 1rem; background: transparent; color: #0f172a; }}
      .question-html {{ font-size: {font_size}pt; line-height: 1.5; }}
      .badge {{ display: inline-block; border-radius: 999px; padding: 0.1rem 0.6rem; margin-right: 0.4rem; background: #e2e8f0; font-size: 0.8em; }}
      .choice.correct {{ color: #15803d; font-weight: 600; }}
      .choice.incorrect {{ color: #b91c1c; }}
      .reference {{ margin-top: 0.75rem; padding: 0.5rem 0.75rem; border-left: 3px solid #1e40af; background: #eff6ff; }}
      .explanation {{ margin-top: 0.5rem; color: #475569; }}
    </style>
    <script>
      window.MathJax = {{ tex: {{ inlineMath: [['$','$']], displayMath: [['$$','$$']] }}, svg: {{ fontCache: 'global' }} }};
    </script>
    <script defer src=\"{_MATHJAX_SCRIPT}\"></script>
  </head>
  <body>
    <div class=\"question-html\">{body_html}</div>
  </body>
</html>"""


renderer = MarkdownMathRenderer()
# Shared instance; MarkdownIt is safe to reuse for read-only renders from the
# Qt thread and the server thread.
