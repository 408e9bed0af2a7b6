"""HTML skeletons for the live-preview page and the exported document."""

from __future__ import annotations

import html
import json
import logging
import os
import re
from pathlib import Path

from PySide6.QtCore import QUrl

from mdexport.config import MarkdownConfig

LOGGER = logging.getLogger(__name__)

TITLE_PLACEHOLDER = "<!-- MDX_TITLE_PLACEHOLDER -->"
HEAD_CONTENT_PLACEHOLDER = "<!-- MDX_HEAD_CONTENT_PLACEHOLDER -->"
STYLE_CONTENT_PLACEHOLDER = "/* MDX_STYLE_CONTENT_PLACEHOLDER */"
BODY_CONTENT_PLACEHOLDER = "<!-- MDX_BODY_CONTENT_PLACEHOLDER -->"

MATHJAX_CDN_SOURCES = (
    "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-svg.js",
    "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js",
)
MERMAID_CDN_SOURCES = ("https://cdn.jsdelivr.net/npm/mermaid@11/dist/mermaid.min.js",)

_PACKAGE_DIR = Path(__file__).resolve().parent

# Relative url(...) refs in a stylesheet; absolute and data: refs are left alone.
_CSS_URL_PATTERN = re.compile(r"""url\(\s*(['"]?)([^'")]+)\1\s*\)""")

DEFAULT_STYLE = """
:root {
  --fg: #1f2937;
  --bg: #f9fafb;
  --code-bg: #e5e7eb;
  --border: #d1d5db;
  --link: #0b57d0;
}
html, body {
  margin: 0;
  padding: 0;
  background: var(--bg);
  color: var(--fg);
  font-family: "Noto Sans", "DejaVu Sans", sans-serif;
  line-height: 1.55;
  font-size: 16px;
}
a {
  color: var(--link);
}
pre, code {
  font-family: "Noto Sans Mono", "DejaVu Sans Mono", monospace;
}
code {
  background: var(--code-bg);
  border-radius: 4px;
  padding: 0.1rem 0.35rem;
}
pre {
  background: var(--code-bg);
  border: 1px solid var(--border);
  border-radius: 6px;
  padding: 0.8rem;
  overflow: auto;
}
pre > code {
  background: transparent;
  padding: 0;
}
table {
  border-collapse: collapse;
}
th, td {
  border: 1px solid var(--border);
  padding: 0.4rem 0.6rem;
}
img {
  max-width: 100%;
}
""".strip()

# Page-side hooks the web view backend drives through runJavaScript().
# Expects window.__mdxMathJaxSources / window.__mdxMermaidSources to be set.
_VIEWER_SCRIPT = """
window.MathJax = {
  startup: {typeset: false},
  tex: {inlineMath: [["$", "$"]], displayMath: [["$$", "$$"]]},
  svg: {fontCache: "none"},
  options: {skipHtmlTags: ["script", "noscript", "style", "textarea", "pre", "code"]}
};
window.__mdxScriptPromises = {};
window.__mdxLoadScript = function (key, sources, isLoaded) {
  if (window.__mdxScriptPromises[key]) {
    return window.__mdxScriptPromises[key];
  }
  window.__mdxScriptPromises[key] = (async () => {
    for (const src of Array.isArray(sources) ? sources : []) {
      try {
        await new Promise((resolve, reject) => {
          const script = document.createElement("script");
          script.src = src;
          script.onload = () => resolve(true);
          script.onerror = () => reject(new Error(`Failed to load ${src}`));
          document.head.appendChild(script);
        });
        if (isLoaded()) {
          return true;
        }
      } catch (error) {
        console.error("mdexport script load failed:", src, error);
      }
    }
    return false;
  })();
  return window.__mdxScriptPromises[key];
};
window.__mdxTypeset = async function (host) {
  try {
    const diagrams = Array.from(host.querySelectorAll("div.mermaid"));
    if (diagrams.length > 0) {
      const loaded = await window.__mdxLoadScript("mermaid", window.__mdxMermaidSources, () => !!window.mermaid);
      if (loaded) {
        mermaid.initialize({startOnLoad: false});
        await mermaid.run({nodes: diagrams, suppressErrors: true});
      }
    }
    if (host.querySelector(".mdx-math-inline, .mdx-math-block")) {
      const loaded = await window.__mdxLoadScript(
        "mathjax",
        window.__mdxMathJaxSources,
        () => !!(window.MathJax && MathJax.typesetPromise)
      );
      if (loaded) {
        if (MathJax.startup && MathJax.startup.promise) {
          await MathJax.startup.promise;
        }
        await MathJax.typesetPromise([host]);
      }
    }
  } catch (error) {
    console.error("mdexport typesetting failed:", error);
  } finally {
    window.__mdxTypesetDone = true;
  }
};
window.mdxSetContent = function (bodyHtml) {
  const host = document.getElementById("mdx-content");
  host.innerHTML = bodyHtml;
  window.__mdxContentSet = true;
  window.__mdxTypesetDone = false;
  window.__mdxTypeset(host);
  return true;
};
window.mdxIsReady = function () {
  if (!window.__mdxContentSet || !window.__mdxTypesetDone) {
    return false;
  }
  const fontsReady = !document.fonts || document.fonts.status === "loaded";
  const imagesReady = Array.from(document.images).every((img) => img.complete);
  return fontsReady && imagesReady;
};
window.mdxSaveContent = function () {
  const head = Array.from(document.head.querySelectorAll("[data-mdx-export]"))
    .map((node) => node.outerHTML)
    .join("\\n");
  const styles = [];
  for (const sheet of Array.from(document.styleSheets)) {
    try {
      for (const rule of Array.from(sheet.cssRules)) {
        styles.push(rule.cssText);
      }
    } catch (err) {
      // Cross-origin sheets cannot be read; they are skipped.
    }
  }
  const host = document.getElementById("mdx-content");
  return {head: head, style: styles.join("\\n"), body: host ? host.innerHTML : ""};
};
""".strip()

_OUTLINE_STYLE = """
#mdx-outline {
  position: fixed;
  top: 0;
  left: 0;
  bottom: 0;
  width: 16rem;
  overflow: auto;
  padding: 1rem;
  border-right: 1px solid #d1d5db;
  font-size: 0.9rem;
}
#mdx-outline ul {
  list-style: none;
  margin: 0;
  padding-left: 0.8rem;
}
body.mdx-with-outline main {
  margin-left: 18rem;
}
@media print {
  #mdx-outline {
    display: none;
  }
  body.mdx-with-outline main {
    margin-left: auto;
  }
}
""".strip()

_OUTLINE_SCRIPT = """
document.addEventListener("DOMContentLoaded", function () {
  const nav = document.getElementById("mdx-outline");
  const headings = document.querySelectorAll("main h1, main h2, main h3, main h4, main h5, main h6");
  if (!nav || headings.length === 0) {
    return;
  }
  const list = document.createElement("ul");
  headings.forEach(function (heading, index) {
    if (!heading.id) {
      heading.id = "mdx-heading-" + index;
    }
    const item = document.createElement("li");
    item.style.marginLeft = (Number(heading.tagName.substring(1)) - 1) * 0.8 + "rem";
    const link = document.createElement("a");
    link.href = "#" + heading.id;
    link.textContent = heading.textContent;
    item.appendChild(link);
    list.appendChild(item);
  });
  nav.appendChild(list);
  document.body.classList.add("mdx-with-outline");
});
""".strip()


def _absolutize_css_urls(css: str, css_path: Path) -> str:
    """Rewrite relative url() refs in a stylesheet to absolute file: URLs."""
    base = QUrl.fromLocalFile(str(css_path.resolve()))

    def replace(match: re.Match[str]) -> str:
        target = match.group(2).strip()
        if not target or target.startswith("#") or QUrl(target).scheme():
            return match.group(0)
        if target.startswith("/"):
            resolved = QUrl.fromLocalFile(target)
        else:
            resolved = base.resolved(QUrl(target))
        return f'url("{resolved.toString()}")'

    return _CSS_URL_PATTERN.sub(replace, css)


def _read_style_file(style_file: str) -> str:
    if not style_file:
        return ""
    path = Path(style_file).expanduser()
    try:
        css = path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        LOGGER.warning("Cannot read style file %s: %s", path, exc)
        return ""
    return _absolutize_css_urls(css, path)


def _resolve_local_script(env_name: str, candidates: list[Path]) -> Path | None:
    env_value = os.environ.get(env_name, "").strip()
    if env_value:
        candidates = [Path(env_value).expanduser(), *candidates]
    for candidate in candidates:
        try:
            if candidate.is_file():
                return candidate.resolve()
        except OSError:
            continue
    return None


def _local_first(local: Path | None, cdn_sources: tuple[str, ...]) -> list[str]:
    sources = [local.as_uri()] if local is not None else []
    sources.extend(cdn_sources)
    return list(dict.fromkeys(sources))


def mathjax_script_sources() -> list[str]:
    """Local MathJax bundle first (MDEXPORT_MATHJAX_JS, vendor dir, system), then CDN."""
    local = _resolve_local_script(
        "MDEXPORT_MATHJAX_JS",
        [
            _PACKAGE_DIR / "vendor" / "mathjax" / "es5" / "tex-svg.js",
            Path("/usr/share/javascript/mathjax/es5/tex-svg.js"),
            Path("/usr/share/mathjax/es5/tex-svg.js"),
            Path("/usr/share/nodejs/mathjax/es5/tex-svg.js"),
            _PACKAGE_DIR / "vendor" / "mathjax" / "es5" / "tex-mml-chtml.js",
            Path("/usr/share/javascript/mathjax/es5/tex-mml-chtml.js"),
            Path("/usr/share/mathjax/es5/tex-mml-chtml.js"),
        ],
    )
    return _local_first(local, MATHJAX_CDN_SOURCES)


def mermaid_script_sources() -> list[str]:
    """Local Mermaid bundle first (MDEXPORT_MERMAID_JS, vendor dir, system), then CDN."""
    local = _resolve_local_script(
        "MDEXPORT_MERMAID_JS",
        [
            _PACKAGE_DIR / "vendor" / "mermaid" / "mermaid.min.js",
            _PACKAGE_DIR / "vendor" / "mermaid" / "dist" / "mermaid.min.js",
            Path("/usr/share/javascript/mermaid/mermaid.min.js"),
            Path("/usr/share/nodejs/mermaid/dist/mermaid.min.js"),
        ],
    )
    return _local_first(local, MERMAID_CDN_SOURCES)


def generate_viewer_template(
    config: MarkdownConfig,
    rendering_style_file: str,
    syntax_highlight_style_file: str,
    use_transparent_bg: bool,
) -> str:
    """Build the live-preview page the rendering backend loads before content."""
    rendering_css = _read_style_file(rendering_style_file or config.rendering_style_file) or DEFAULT_STYLE
    highlight_css = _read_style_file(syntax_highlight_style_file or config.syntax_highlight_style_file)
    background_css = "html, body { background: transparent !important; }" if use_transparent_bg else ""
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <meta name="generator" content="{html.escape(config.app_name)}" data-mdx-export/>
  <style id="mdx-rendering-style">
{rendering_css}
  </style>
  <style id="mdx-highlight-style">
{highlight_css}
  </style>
  <style id="mdx-page-style">
main {{
  max-width: {config.content_max_width};
  margin: 0 auto;
  padding: 1.1rem 1.4rem 4rem 1.4rem;
}}
{background_css}
  </style>
  <script>
window.__mdxMathJaxSources = {json.dumps(mathjax_script_sources())};
window.__mdxMermaidSources = {json.dumps(mermaid_script_sources())};
{_VIEWER_SCRIPT}
  </script>
</head>
<body>
  <main id="mdx-content"></main>
</body>
</html>
"""


def generate_export_template(config: MarkdownConfig, add_outline_panel: bool) -> str:
    """Build the exported document skeleton with the four fill placeholders."""
    outline_style = _OUTLINE_STYLE if add_outline_panel else ""
    outline_nav = '<nav id="mdx-outline"></nav>' if add_outline_panel else ""
    outline_script = f"<script>\n{_OUTLINE_SCRIPT}\n</script>" if add_outline_panel else ""
    return f"""<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8"/>
  <meta name="viewport" content="width=device-width, initial-scale=1"/>
  <title>{TITLE_PLACEHOLDER}</title>
  {HEAD_CONTENT_PLACEHOLDER}
  <style>
{STYLE_CONTENT_PLACEHOLDER}
main {{
  max-width: {config.content_max_width};
  margin: 0 auto;
  padding: 1.1rem 1.4rem 4rem 1.4rem;
}}
{outline_style}
  </style>
  {outline_script}
</head>
<body>
  {outline_nav}
  <main>
{BODY_CONTENT_PLACEHOLDER}
  </main>
</body>
</html>
"""


def _fill(template: str, placeholder: str, content: str) -> str:
    return template.replace(placeholder, content, 1)


def fill_title(template: str, title: str) -> str:
    return _fill(template, TITLE_PLACEHOLDER, html.escape(title))


def fill_head_content(template: str, head: str) -> str:
    return _fill(template, HEAD_CONTENT_PLACEHOLDER, head)


def fill_style_content(template: str, style: str) -> str:
    return _fill(template, STYLE_CONTENT_PLACEHOLDER, style)


def fill_body_content(template: str, body: str) -> str:
    return _fill(template, BODY_CONTENT_PLACEHOLDER, body)
