"""Per-dialect HTML harnesses and the shared element capture.

Each harness sets body[data-render-state] once it is finished:
  done        -> #diagram holds the rendered graphic
  error       -> the engine rejected the diagram source
  unavailable -> the renderer itself (script or remote service) never loaded
"""

import json
from string import Template

from vizpdf.config import Settings
from vizpdf.core.errors import RenderError
from vizpdf.core.models import Dialect, ErrorKind, RenderedImage
from vizpdf.core.render.encoding import plantuml_url


RENDER_STATE_SELECTOR = "body[data-render-state]"
DIAGRAM_SELECTOR = "#diagram"

_STATE_ERRORS = {
    "error":       ErrorKind.syntax_rejected,
    "unavailable": ErrorKind.engine_unavailable,
}

_PAGE = Template("""<!DOCTYPE html>
<html>
  <head>
    <meta charset="UTF-8">
    <style>
      body { margin: 0; padding: 20px; background: white; }
      #diagram { display: inline-block; }
      #diagram img { display: block; max-width: 100%; height: auto; }
    </style>
  </head>
  <body>
$body
  </body>
</html>
""")

_MERMAID_BODY = Template("""    <div id="diagram"></div>
    <script src="$script_url"></script>
    <script>
      const source = $source;
      const finish = (state, message) => {
        if (message) document.body.dataset.renderError = message;
        document.body.dataset.renderState = state;
      };
      (async () => {
        if (typeof mermaid === 'undefined') {
          finish('unavailable', 'mermaid script did not load');
          return;
        }
        try {
          mermaid.initialize({ startOnLoad: false, theme: 'default', securityLevel: 'strict' });
          const { svg } = await mermaid.render('vizpdf-diagram', source);
          document.getElementById('diagram').innerHTML = svg;
          finish('done');
        } catch (err) {
          finish('error', String((err && err.message) || err));
        }
      })();
    </script>""")

_PLANTUML_BODY = Template("""    <div id="diagram"><img src="$url" alt="PlantUML diagram"
      onload="document.body.dataset.renderState = 'done'"
      onerror="document.body.dataset.renderError = 'diagram service did not answer'; document.body.dataset.renderState = 'unavailable'"></div>""")


def _js_string(source: str) -> str:
    """JSON-quote source so it can sit inside a <script> element."""
    return json.dumps(source).replace("</", "<\\/")


def _html_attr(value: str) -> str:
    return value.replace("&", "&amp;").replace('"', "&quot;").replace("<", "&lt;")


def mermaid_html(source: str, settings: Settings) -> str:
    """Native strategy: render in-page with the Mermaid script."""
    body = _MERMAID_BODY.substitute(
        script_url=_html_attr(settings.mermaid_script_url),
        source=_js_string(source),
    )
    return _PAGE.substitute(body=body)


def plantuml_html(source: str, settings: Settings) -> str:
    """Remote strategy: load the image addressed by the encoded source."""
    url = plantuml_url(source, settings.plantuml_server_url)
    return _PAGE.substitute(body=_PLANTUML_BODY.substitute(url=_html_attr(url)))


HTML_BUILDERS = {
    Dialect.mermaid:  mermaid_html,
    Dialect.plantuml: plantuml_html,
}


async def capture(page, html: str, timeout_ms: int) -> RenderedImage:
    """Load html, wait for the render-state signal, and screenshot #diagram at its own size."""
    await page.set_content(html, wait_until="networkidle", timeout=timeout_ms)
    await page.wait_for_selector(RENDER_STATE_SELECTOR, timeout=timeout_ms)

    state = await page.get_attribute("body", "data-render-state")
    if state in _STATE_ERRORS:
        message = await page.get_attribute("body", "data-render-error") or state
        raise RenderError(_STATE_ERRORS[state], message)

    element = await page.query_selector(DIAGRAM_SELECTOR)
    if element is None:
        raise RenderError(ErrorKind.empty_output, "rendered element not found")
    box = await element.bounding_box()
    if not box or box["width"] < 1 or box["height"] < 1:
        raise RenderError(ErrorKind.empty_output, f"rendered element has no area: {box}")

    data = await element.screenshot(type="png", timeout=timeout_ms)
    if not data:
        raise RenderError(ErrorKind.empty_output, "screenshot produced no bytes")
    return RenderedImage(data=data, width=round(box["width"]), height=round(box["height"]), format="png")
