"""Image composition for paired photos and share cards."""

import asyncio
import logging
import random
from collections.abc import Sequence
from dataclasses import dataclass, field
from pathlib import Path
from uuid import uuid4

from PIL import Image, ImageDraw, ImageFont, ImageOps

from portrait_analysis.domain.errors import CompositionError

_logger = logging.getLogger(__name__)

CAPTION_WIDTH = 35
CARD_SIZE = (1080, 1350)
HEADER_HEIGHT = 380
TEXT_MARGIN_TOP = 80
FONT_SIZE = 42
AVATAR_SIZE = 240
AVATAR_FRAME_SIZE = AVATAR_SIZE + 80
AVATAR_FRAME_RADIUS = 71
CORNER_OFFSET = 120
LINE_SPACING = 1.2
SENTENCE_SPACING = 2.2

_FONT_CANDIDATES = (
    "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
    "DejaVuSans.ttf",
    "arial.ttf",
)


@dataclass(frozen=True)
class CaptionLine:
    """One rendered caption line and the gap before it, in line heights."""

    text: str
    spacing: float


def wrap_caption(text: str, width: int = CAPTION_WIDTH) -> list[CaptionLine]:
    """Split a caption into sentence lines, re-breaking long ones on words."""
    sentences = [part.strip() for part in text.split(".") if part.strip()]
    closed = text.rstrip().endswith(".")
    lines = [
        f"{sentence}." if closed or index < len(sentences) - 1 else sentence
        for index, sentence in enumerate(sentences)
    ]

    wrapped: list[str] = []
    for line in lines:
        if len(line) <= width:
            wrapped.append(line)
            continue
        current = ""
        for word in line.split(" "):
            if len(current + word) > width:
                if current:
                    wrapped.append(current.strip())
                current = f"{word} "
            else:
                current += f"{word} "
        if current:
            wrapped.append(current.strip())

    result: list[CaptionLine] = []
    for index, line in enumerate(wrapped):
        if index == 0:
            spacing = 0.0
        elif wrapped[index - 1].endswith("."):
            spacing = SENTENCE_SPACING
        else:
            spacing = LINE_SPACING
        result.append(CaptionLine(text=line, spacing=spacing))
    return result


@dataclass
class ImageCompositor:
    """Deterministic raster transforms used by the analysis pipeline."""

    backgrounds_dir: Path
    rng: random.Random = field(default_factory=random.Random)

    async def combine_horizontally(self, paths: Sequence[Path]) -> Path:
        """Join images left-to-right at the tallest input's height."""
        if not paths:
            raise CompositionError("No image paths provided")
        if len(paths) == 1:
            return paths[0]
        _logger.info("Combining %s photos horizontally", len(paths))
        try:
            return await asyncio.to_thread(self._combine, list(paths))
        except Exception as exc:
            raise CompositionError(f"Photo combining failed: {exc}") from exc

    async def render_share_card(
        self, base_photo: Path, caption: str, avatar: Path | None = None
    ) -> Path:
        """Render caption and circular portrait onto a template background."""
        try:
            return await asyncio.to_thread(self._render_card, base_photo, caption, avatar)
        except Exception as exc:
            raise CompositionError(f"Share card creation failed: {exc}") from exc

    def _combine(self, paths: list[Path]) -> Path:
        images = [_open_rgb(path) for path in paths]
        max_height = max(image.height for image in images)
        resized = [
            image.resize(
                (max(1, round(image.width * max_height / image.height)), max_height),
                Image.Resampling.LANCZOS,
            )
            for image in images
        ]
        canvas = Image.new(
            "RGB", (sum(image.width for image in resized), max_height), "white"
        )
        left = 0
        for image in resized:
            canvas.paste(image, (left, 0))
            left += image.width

        output = paths[0].parent / f"combined_{uuid4().hex}.jpg"
        canvas.save(output, format="JPEG", quality=95)
        return output

    def _render_card(self, base_photo: Path, caption: str, avatar: Path | None) -> Path:
        card = self._background()
        draw = ImageDraw.Draw(card)
        font = _load_font(FONT_SIZE)

        y = float(HEADER_HEIGHT + TEXT_MARGIN_TOP)
        for line in wrap_caption(caption):
            y += line.spacing * FONT_SIZE
            text_width = draw.textlength(line.text, font=font)
            draw.text(((card.width - text_width) / 2, y), line.text, fill="black", font=font)

        frame_left = card.width - AVATAR_FRAME_SIZE - CORNER_OFFSET
        frame_top = card.height - AVATAR_FRAME_SIZE - CORNER_OFFSET
        draw.rounded_rectangle(
            (
                frame_left,
                frame_top,
                frame_left + AVATAR_FRAME_SIZE,
                frame_top + AVATAR_FRAME_SIZE,
            ),
            radius=AVATAR_FRAME_RADIUS,
            fill="white",
        )
        portrait, mask = _circular_crop(avatar or base_photo, AVATAR_SIZE)
        padding = (AVATAR_FRAME_SIZE - AVATAR_SIZE) // 2
        card.paste(portrait, (frame_left + padding, frame_top + padding), mask)

        output = base_photo.parent / f"social_{uuid4().hex}.jpg"
        card.save(output, format="JPEG", quality=95)
        _logger.info(
            "Share card created: %s (using %s)",
            output,
            "avatar" if avatar else "uploaded photo",
        )
        return output

    def _background(self) -> Image.Image:
        templates = sorted(
            path for path in self.backgrounds_dir.glob("*.png") if path.stem.isdigit()
        )
        if not templates:
            _logger.debug("No card templates in %s, using plain canvas", self.backgrounds_dir)
            return Image.new("RGB", CARD_SIZE, "white")
        return _open_rgb(self.rng.choice(templates))


def _open_rgb(path: Path) -> Image.Image:
    with Image.open(path) as raw:
        image = ImageOps.exif_transpose(raw) or raw
        if image.mode in ("RGBA", "LA"):
            background = Image.new("RGB", image.size, "white")
            background.paste(image, mask=image.split()[-1])
            return background
        return image.convert("RGB")


def _circular_crop(path: Path, size: int) -> tuple[Image.Image, Image.Image]:
    portrait = ImageOps.fit(_open_rgb(path), (size, size), Image.Resampling.LANCZOS)
    mask = Image.new("L", (size, size), 0)
    ImageDraw.Draw(mask).ellipse((0, 0, size - 1, size - 1), fill=255)
    return portrait, mask


def _load_font(size: int) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    for candidate in _FONT_CANDIDATES:
        try:
            return ImageFont.truetype(candidate, size)
        except OSError:
            continue
    return ImageFont.load_default()
