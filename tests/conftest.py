"""Root test configuration: in-process fake browser and shared fixtures"""

import asyncio
import html
import re

import pytest
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from vizpdf.config import Settings


PNG_BYTES = b"\x89PNG\r\n\x1a\nfake-image"
PDF_HEADER = b"%PDF-1.4\n"


def default_state(content: str) -> str:
    """Render outcome keyed on marker words in the diagram source."""
    if "HANG" in content:
        return "timeout"
    if "NOLOAD" in content:
        return "unavailable"
    if "BROKEN" in content:
        return "error"
    return "done"


class FakeElement:
    def __init__(self, browser):
        self._browser = browser

    async def bounding_box(self):
        width, height = self._browser.box
        return {"x": 0, "y": 0, "width": width, "height": height}

    async def screenshot(self, **kwargs):
        return self._browser.image


class FakePage:
    def __init__(self, browser):
        self._browser = browser
        self.content = ""
        self.state = None

    async def set_content(self, content, wait_until=None, timeout=None):
        self.content = content
        self._browser.contents.append(content)

    async def wait_for_selector(self, selector, timeout=None):
        state = self._browser.state_for(self.content)
        if state == "timeout":
            raise PlaywrightTimeoutError(f"Timeout {timeout}ms exceeded.")
        self.state = state

    async def get_attribute(self, selector, name):
        if name == "data-render-state":
            return self.state
        if name == "data-render-error":
            return "Parse error on line 2" if self.state == "error" else "script did not load"
        return None

    async def query_selector(self, selector):
        return FakeElement(self._browser)

    async def wait_for_timeout(self, timeout):
        self._browser.settle_waits.append(timeout)

    async def pdf(self, **options):
        if self._browser.hang_pdf:
            await asyncio.Event().wait()
        if self._browser.fail_pdf:
            raise PlaywrightError("Target page, context or browser has been closed")
        self._browser.pdf_options.append(options)
        return PDF_HEADER + self.content.encode("utf-8")


class FakeContext:
    def __init__(self, browser, viewport):
        self._browser = browser
        self.viewport = viewport

    async def new_page(self):
        return FakePage(self._browser)

    async def close(self):
        self._browser.contexts_closed += 1


class FakeBrowser:
    """Stands in for a Playwright Browser; records what the code under test asked of it."""

    def __init__(self, state_for=default_state, box=(320, 200), image=PNG_BYTES, fail_pdf=False, hang_pdf=False):
        self.state_for = state_for
        self.box = box
        self.image = image
        self.fail_pdf = fail_pdf
        self.hang_pdf = hang_pdf
        self.launches = 0
        self.closed = False
        self.driver_stopped = False
        self.contexts_opened = 0
        self.contexts_closed = 0
        self.contents = []
        self.settle_waits = []
        self.pdf_options = []

    async def new_context(self, viewport=None):
        self.contexts_opened += 1
        return FakeContext(self, viewport)

    async def close(self):
        self.closed = True


class FakeDriver:
    def __init__(self, browser):
        self._browser = browser

    async def stop(self):
        self._browser.driver_stopped = True


def make_launcher(browser):
    async def _launch(settings):
        browser.launches += 1
        return FakeDriver(browser), browser
    return _launch


async def failing_launcher(settings):
    raise PlaywrightError("Executable doesn't exist at /ms-playwright/chromium/chrome")


def fake_extract_text(pdf_bytes: bytes) -> str:
    """Visible text of the printed markup, approximating a PDF text layer."""
    markup = pdf_bytes.decode("utf-8").removeprefix(PDF_HEADER.decode())
    markup = re.sub(r"<(style|title|script)[^>]*>.*?</\1>", " ", markup, flags=re.DOTALL)
    text = re.sub(r"<br\s*/?>", "\n", markup)
    text = re.sub(r"<[^>]+>", " ", text)
    return html.unescape(text).strip()


@pytest.fixture(name="settings")
def settings_fixture():
    return Settings(render_timeout_ms=1000, settle_delay_ms=0)


@pytest.fixture(name="browser")
def browser_fixture():
    return FakeBrowser()


@pytest.fixture(name="launcher")
def launcher_fixture(browser):
    return make_launcher(browser)


@pytest.fixture(name="extract")
def extract_fixture():
    return fake_extract_text


@pytest.fixture(name="broken_launcher")
def broken_launcher_fixture():
    return failing_launcher


@pytest.fixture(name="png")
def png_fixture():
    return PNG_BYTES


def build_text_pdf(pages: list[str]) -> bytes:
    """Minimal PDF with one line of Helvetica text per page."""
    count = len(pages)
    kids = " ".join(f"{3 + 2 * i} 0 R" for i in range(count))
    font_id = 3 + 2 * count
    objects = [
        "<< /Type /Catalog /Pages 2 0 R >>",
        f"<< /Type /Pages /Kids [{kids}] /Count {count} >>",
    ]
    for i, text in enumerate(pages):
        escaped = text.replace("\\", "\\\\").replace("(", "\\(").replace(")", "\\)")
        stream = f"BT /F1 12 Tf 72 720 Td ({escaped}) Tj ET"
        objects.append(
            f"<< /Type /Page /Parent 2 0 R /MediaBox [0 0 612 792] "
            f"/Resources << /Font << /F1 {font_id} 0 R >> >> /Contents {4 + 2 * i} 0 R >>"
        )
        objects.append(f"<< /Length {len(stream)} >>\nstream\n{stream}\nendstream")
    objects.append("<< /Type /Font /Subtype /Type1 /BaseFont /Helvetica >>")

    out = b"%PDF-1.4\n"
    offsets = []
    for number, body in enumerate(objects, start=1):
        offsets.append(len(out))
        out += f"{number} 0 obj\n{body}\nendobj\n".encode("latin-1")
    xref = len(out)
    out += f"xref\n0 {len(objects) + 1}\n0000000000 65535 f \n".encode("latin-1")
    out += "".join(f"{offset:010d} 00000 n \n" for offset in offsets).encode("latin-1")
    out += f"trailer\n<< /Size {len(objects) + 1} /Root 1 0 R >>\nstartxref\n{xref}\n%%EOF\n".encode("latin-1")
    return out


@pytest.fixture(name="text_pdf")
def text_pdf_fixture():
    return build_text_pdf
