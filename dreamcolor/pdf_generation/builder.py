"""
Assembly of generated coloring pages into a printable PDF book.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from io import BytesIO
from pathlib import Path
from typing import TYPE_CHECKING, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.enums import TA_CENTER
from reportlab.lib.pagesizes import A4, LETTER
from reportlab.lib.styles import ParagraphStyle
from reportlab.lib.units import inch, mm
from reportlab.lib.utils import ImageReader
from reportlab.pdfbase import pdfmetrics
from reportlab.pdfbase.ttfonts import TTFont
from reportlab.pdfgen import canvas
from reportlab.platypus import Frame, Paragraph

from dreamcolor.common.errors import IncompleteArtifactSet, InvalidInput

if TYPE_CHECKING:
    from dreamcolor.pipeline.pipeline import GeneratedArtifact, GenerationRun

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PageLayoutConfig:
    cover_background: colors.Color
    accent_color: colors.Color
    cover_text_color: colors.Color
    marker_color: colors.Color
    marker_background: colors.Color


DEFAULT_LAYOUT = PageLayoutConfig(
    cover_background=colors.HexColor("#4F46E5"),
    accent_color=colors.HexColor("#A855F7"),
    cover_text_color=colors.white,
    marker_color=colors.HexColor("#334155"),
    marker_background=colors.white,
)


PAGE_SIZES = {
    "a4": A4,
    "letter": LETTER,
    "portrait": (7.5 * inch, 10 * inch),
}


@dataclass(frozen=True)
class Placement:
    """Where an image is drawn on its page, in PDF points from the bottom-left corner."""

    x: float
    y: float
    width: float
    height: float


@dataclass(frozen=True)
class CoverPage:
    title: str
    subtitle: str


@dataclass(frozen=True)
class DocumentPage:
    number: int
    image_data: bytes = field(repr=False)
    media_type: str
    source_prompt: str
    placement: Placement
    marker: str


@dataclass(frozen=True)
class ColoringBookDocument:
    """A fully laid-out book: cover first, then one artwork page per artifact."""

    title: str
    owner_label: str
    page_size: tuple[float, float]
    cover: CoverPage
    pages: tuple[DocumentPage, ...]

    @property
    def page_count(self) -> int:
        return 1 + len(self.pages)


class ColoringBookAssembler:
    """
    Turns a complete, ordered artifact set into a :class:`ColoringBookDocument`.

    Assembly is a pure function of its inputs: the same artifacts and metadata always
    produce an equal document.
    """

    def __init__(self, *, page_size: tuple[float, float] = PAGE_SIZES["letter"]) -> None:
        self.page_size = page_size

    def assemble(
        self,
        artifacts: Sequence["GeneratedArtifact"],
        title: str,
        owner_label: str,
        *,
        expected_count: int | None = None,
    ) -> ColoringBookDocument:
        if not title or not title.strip():
            raise InvalidInput("title must be a non-empty string.")
        if not owner_label or not owner_label.strip():
            raise InvalidInput("owner_label must be a non-empty string.")

        ordered = tuple(artifacts)
        _validate_artifact_set(ordered, expected_count)

        width, height = self.page_size
        pages = tuple(
            DocumentPage(
                number=artifact.index + 1,
                image_data=artifact.image_data,
                media_type=artifact.media_type,
                source_prompt=artifact.source_prompt,
                placement=_full_bleed_placement(artifact, width, height),
                marker=f"Page {artifact.index + 1}",
            )
            for artifact in ordered
        )

        return ColoringBookDocument(
            title=title.strip(),
            owner_label=owner_label.strip(),
            page_size=self.page_size,
            cover=CoverPage(
                title=title.strip(),
                subtitle=f"A coloring book for {owner_label.strip()}",
            ),
            pages=pages,
        )

    def assemble_run(self, run: "GenerationRun", *, title: str | None = None) -> ColoringBookDocument:
        """
        Assemble the artifacts of a completed run.

        Any run that did not complete has nothing to assemble, which surfaces as
        :class:`IncompleteArtifactSet`.
        """
        return self.assemble(
            run.assemblable_artifacts(),
            title or run.theme,
            run.owner_label,
            expected_count=run.page_count,
        )


def _validate_artifact_set(
    artifacts: Sequence["GeneratedArtifact"],
    expected_count: int | None,
) -> None:
    if not artifacts:
        raise IncompleteArtifactSet("Cannot assemble a coloring book without any pages.")

    if expected_count is not None and len(artifacts) != expected_count:
        raise IncompleteArtifactSet(
            f"Expected {expected_count} pages but received {len(artifacts)}."
        )

    for position, artifact in enumerate(artifacts):
        if artifact.index != position:
            raise IncompleteArtifactSet(
                f"Page at position {position} carries index {artifact.index}; "
                "pages must be numbered 0..N-1 without gaps or duplicates."
            )


def _full_bleed_placement(
    artifact: "GeneratedArtifact",
    page_width: float,
    page_height: float,
) -> Placement:
    try:
        img_width, img_height = ImageReader(BytesIO(artifact.image_data)).getSize()
    except Exception as exc:
        raise IncompleteArtifactSet(
            f"Page {artifact.index + 1} does not contain a readable image."
        ) from exc

    scale = max(page_width / img_width, page_height / img_height)
    draw_width = img_width * scale
    draw_height = img_height * scale
    return Placement(
        x=(page_width - draw_width) / 2,
        y=(page_height - draw_height) / 2,
        width=draw_width,
        height=draw_height,
    )


class ColoringBookPDFBuilder:
    """
    Render an assembled coloring book into PDF bytes or a file.

    Output is produced in reportlab's invariant mode, so rendering the same document
    twice yields identical bytes.
    """

    def __init__(
        self,
        *,
        margin_mm: float = 14.0,
        layout: PageLayoutConfig = DEFAULT_LAYOUT,
    ) -> None:
        self.margin = margin_mm * mm
        self.layout = layout

        self.title_font, self.subtitle_font = self._configure_cover_fonts()

        self.title_style = ParagraphStyle(
            name="BookTitle",
            fontName=self.title_font,
            fontSize=34,
            leading=40,
            alignment=TA_CENTER,
            textColor=self.layout.cover_text_color,
            spaceAfter=18,
        )
        self.subtitle_style = ParagraphStyle(
            name="BookSubtitle",
            fontName=self.subtitle_font,
            fontSize=18,
            leading=24,
            alignment=TA_CENTER,
            textColor=self.layout.cover_text_color,
            spaceAfter=12,
        )
        self.marker_style = ParagraphStyle(
            name="PageMarker",
            fontName="Helvetica-Bold",
            fontSize=9,
            leading=11,
            alignment=TA_CENTER,
            textColor=self.layout.marker_color,
        )

    def render(self, document: ColoringBookDocument) -> bytes:
        buffer = BytesIO()
        pdf = canvas.Canvas(buffer, pagesize=document.page_size, invariant=1)
        pdf.setTitle(document.title)
        pdf.setAuthor("DreamColor")
        pdf.setSubject(document.cover.subtitle)

        width, height = document.page_size
        self._draw_cover_page(pdf, document, width, height)
        for page in document.pages:
            self._draw_artwork_page(pdf, page, width, height)

        pdf.save()
        return buffer.getvalue()

    def build(self, document: ColoringBookDocument, output_path: Path | str) -> Path:
        output_file = Path(output_path)
        output_file.parent.mkdir(parents=True, exist_ok=True)
        output_file.write_bytes(self.render(document))
        logger.info("Wrote %d-page coloring book to %s", document.page_count, output_file)
        return output_file

    # ------------------------------------------------------------------ cover rendering

    def _draw_cover_page(
        self,
        pdf: canvas.Canvas,
        document: ColoringBookDocument,
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(self.layout.cover_background)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        pdf.saveState()
        pdf.setFillColor(self.layout.accent_color)
        pdf.circle(width * 0.15, height * 0.88, width * 0.09, stroke=0, fill=1)
        pdf.circle(width * 0.88, height * 0.12, width * 0.12, stroke=0, fill=1)
        pdf.restoreState()

        frame = Frame(
            self.margin,
            self.margin,
            width - 2 * self.margin,
            height * 0.62,
            showBoundary=0,
        )
        intro = [
            Paragraph(escape(document.cover.title), self.title_style),
            Paragraph(escape(document.cover.subtitle), self.subtitle_style),
            Paragraph(f"{len(document.pages)} pages to color", self.subtitle_style),
        ]
        frame.addFromList(intro, pdf)
        pdf.showPage()

    # ------------------------------------------------------------------ artwork pages

    def _draw_artwork_page(
        self,
        pdf: canvas.Canvas,
        page: DocumentPage,
        width: float,
        height: float,
    ) -> None:
        pdf.setFillColor(colors.white)
        pdf.rect(0, 0, width, height, stroke=0, fill=1)

        placement = page.placement
        pdf.drawImage(
            ImageReader(BytesIO(page.image_data)),
            placement.x,
            placement.y,
            placement.width,
            placement.height,
            preserveAspectRatio=True,
            mask="auto",
        )

        self._draw_marker(pdf, page.marker, width)
        pdf.showPage()

    # ------------------------------------------------------------------ helpers

    def _draw_marker(self, pdf: canvas.Canvas, text: str, width: float) -> None:
        badge_width = 58
        badge_height = 16
        badge_x = (width - badge_width) / 2
        pdf.saveState()
        pdf.setFillColor(self.layout.marker_background)
        pdf.roundRect(badge_x, 8, badge_width, badge_height, 6, stroke=0, fill=1)
        pdf.restoreState()

        marker_frame = Frame(badge_x, 8, badge_width, badge_height, 0, 0, 0, 0, showBoundary=0)
        marker_frame.addFromList([Paragraph(escape(text), self.marker_style)], pdf)

    def _configure_cover_fonts(self) -> tuple[str, str]:
        playful_options = [
            ("ComicSansMS-Bold", "ComicSansMS", ["Comic Sans MS Bold.ttf", "ComicSansMS-Bold.ttf"], ["Comic Sans MS.ttf", "ComicSansMS.ttf"]),
            ("FredokaOne", "Nunito", ["FredokaOne-Regular.ttf"], ["Nunito-Regular.ttf"]),
        ]
        search_roots = [
            Path("/Library/Fonts"),
            Path("/System/Library/Fonts"),
            Path.home() / "Library" / "Fonts",
            Path("C:/Windows/Fonts"),
            Path("/usr/share/fonts/truetype"),
            Path("/usr/local/share/fonts"),
        ]

        for title_name, subtitle_name, title_files, subtitle_files in playful_options:
            if self._register_font_if_available(
                title_name, title_files, search_roots
            ) and self._register_font_if_available(subtitle_name, subtitle_files, search_roots):
                return title_name, subtitle_name

        return "Helvetica-Bold", "Helvetica"

    @staticmethod
    def _register_font_if_available(
        font_name: str,
        candidate_filenames: Sequence[str],
        search_roots: Sequence[Path],
    ) -> bool:
        if font_name in pdfmetrics.getRegisteredFontNames():
            return True

        for root in search_roots:
            for candidate in candidate_filenames:
                font_path = root / candidate
                if not font_path.exists():
                    continue
                try:
                    pdfmetrics.registerFont(TTFont(font_name, str(font_path)))
                except Exception:
                    logger.debug("Could not register font %s from %s", font_name, font_path)
                    continue
                return True
        return False
