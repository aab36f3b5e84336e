"""Render CodeBlocks to images with per-block failure isolation"""

import logging

from playwright.async_api import Error as PlaywrightError
from playwright.async_api import TimeoutError as PlaywrightTimeoutError

from vizpdf.config import Settings
from vizpdf.core.errors import RenderError
from vizpdf.core.models import CodeBlock, ErrorKind, RenderedBlock, RenderedImage, RenderFailure
from vizpdf.core.render.session import EngineSession
from vizpdf.core.render.strategies import HTML_BUILDERS, capture


logger = logging.getLogger(__name__)


class BlockRenderer:
    """Turns CodeBlocks into RenderedBlocks using one shared EngineSession."""

    def __init__(self, session: EngineSession, settings: Settings):
        self._session = session
        self._settings = settings

    async def _render(self, block: CodeBlock) -> RenderedImage:
        build = HTML_BUILDERS.get(block.dialect)
        if build is None:
            raise RenderError(ErrorKind.engine_unavailable, f"Unsupported dialect: {block.dialect}")
        html = build(block.source_code, self._settings)
        timeout = self._settings.render_timeout_ms
        try:
            async with self._session.page() as page:
                return await capture(page, html, timeout)
        except PlaywrightTimeoutError as e:
            raise RenderError(ErrorKind.render_timeout, f"No completion signal within {timeout} ms") from e
        except PlaywrightError as e:
            raise RenderError(ErrorKind.engine_unavailable, f"Engine error: {e.message}") from e

    async def render_one(self, block: CodeBlock) -> RenderedBlock:
        """Render one block; a RenderError becomes RenderedBlock.failure instead of propagating."""
        logger.info("Rendering %s block at offset %d", block.dialect.value, block.start_offset)
        try:
            image = await self._render(block)
        except RenderError as e:
            logger.warning(
                "Failed to render %s block at offset %d: %s (%s)",
                block.dialect.value, block.start_offset, e.message, e.kind.value,
            )
            return RenderedBlock.from_block(block, failure=RenderFailure(kind=e.kind, message=e.message))
        logger.debug("Rendered %dx%d image", image.width, image.height)
        return RenderedBlock.from_block(block, image=image)

    async def render_batch(self, blocks: list[CodeBlock]) -> list[RenderedBlock]:
        """Render blocks strictly in order; the result has the same length and order as the input."""
        results = []
        for block in blocks:
            results.append(await self.render_one(block))
        rendered = sum(1 for r in results if r.ok)
        logger.info("Rendered %d/%d visualization(s)", rendered, len(results))
        return results

    async def cleanup(self) -> None:
        await self._session.shutdown()
