"""Tests for coloring book assembly and PDF rendering."""

from __future__ import annotations

import re

import pytest

from dreamcolor.common.errors import IncompleteArtifactSet, InvalidInput
from dreamcolor.pdf_generation import (
    PAGE_SIZES,
    ColoringBookAssembler,
    ColoringBookPDFBuilder,
)
from dreamcolor.pipeline import GeneratedArtifact, GenerationRun, RunStatus


def make_artifacts(image_data: bytes, indices) -> list[GeneratedArtifact]:
    return [
        GeneratedArtifact(
            index=index,
            image_data=image_data,
            media_type="image/png",
            source_prompt=f"Space Dinosaurs, page {index}",
        )
        for index in indices
    ]


def count_pdf_pages(pdf_bytes: bytes) -> int:
    return len(re.findall(rb"/Type /Page\b", pdf_bytes))


def test_assemble_builds_cover_and_ordered_pages(png_bytes):
    document = ColoringBookAssembler().assemble(
        make_artifacts(png_bytes, range(5)), "Space Dinosaurs", "Leo", expected_count=5
    )

    assert document.page_count == 6
    assert document.cover.title == "Space Dinosaurs"
    assert document.cover.subtitle == "A coloring book for Leo"
    assert [page.number for page in document.pages] == [1, 2, 3, 4, 5]
    assert [page.marker for page in document.pages] == [f"Page {n}" for n in range(1, 6)]


def test_assemble_is_pure(png_bytes):
    assembler = ColoringBookAssembler()
    artifacts = make_artifacts(png_bytes, range(3))

    first = assembler.assemble(artifacts, "Robots", "Mia")
    second = assembler.assemble(list(artifacts), "Robots", "Mia")

    assert first == second


def test_pages_are_drawn_full_bleed(png_bytes):
    width, height = PAGE_SIZES["letter"]
    document = ColoringBookAssembler(page_size=(width, height)).assemble(
        make_artifacts(png_bytes, range(1)), "Robots", "Mia"
    )

    placement = document.pages[0].placement
    assert placement.x <= 0 and placement.y <= 0
    assert placement.width >= width and placement.height >= height
    assert placement.x + placement.width / 2 == pytest.approx(width / 2)
    assert placement.y + placement.height / 2 == pytest.approx(height / 2)


@pytest.mark.parametrize(
    "indices",
    [
        [],
        [0, 2, 3],
        [1, 2, 3],
        [0, 1, 1],
        [1, 0, 2],
    ],
)
def test_assemble_rejects_gaps_duplicates_and_misordering(png_bytes, indices):
    with pytest.raises(IncompleteArtifactSet):
        ColoringBookAssembler().assemble(make_artifacts(png_bytes, indices), "Robots", "Mia")


def test_assemble_rejects_count_mismatch(png_bytes):
    with pytest.raises(IncompleteArtifactSet, match="Expected 5 pages"):
        ColoringBookAssembler().assemble(
            make_artifacts(png_bytes, range(3)), "Robots", "Mia", expected_count=5
        )


@pytest.mark.parametrize(("title", "owner"), [("", "Mia"), ("Robots", " ")])
def test_assemble_rejects_blank_metadata(png_bytes, title, owner):
    with pytest.raises(InvalidInput):
        ColoringBookAssembler().assemble(make_artifacts(png_bytes, range(1)), title, owner)


def test_assemble_rejects_unreadable_image():
    with pytest.raises(IncompleteArtifactSet, match="readable image"):
        ColoringBookAssembler().assemble(make_artifacts(b"not an image", range(1)), "Robots", "Mia")


def test_assemble_run_requires_completed_run(png_bytes):
    artifacts = tuple(make_artifacts(png_bytes, range(2)))
    run = GenerationRun(
        theme="Robots",
        owner_label="Mia",
        page_count=2,
        artifacts=artifacts,
        status=RunStatus.RUNNING,
    )

    with pytest.raises(IncompleteArtifactSet):
        ColoringBookAssembler().assemble_run(run)

    run.status = RunStatus.COMPLETED
    document = ColoringBookAssembler().assemble_run(run)
    assert document.title == "Robots"
    assert document.page_count == 3


def test_render_produces_one_pdf_page_per_document_page(png_bytes):
    document = ColoringBookAssembler().assemble(
        make_artifacts(png_bytes, range(5)), "Space Dinosaurs", "Leo"
    )

    pdf_bytes = ColoringBookPDFBuilder().render(document)

    assert pdf_bytes.startswith(b"%PDF")
    assert count_pdf_pages(pdf_bytes) == document.page_count == 6


def test_render_is_byte_identical_for_same_document(png_bytes):
    document = ColoringBookAssembler().assemble(
        make_artifacts(png_bytes, range(2)), "Robots & <Friends>", "Mia"
    )
    builder = ColoringBookPDFBuilder()

    assert builder.render(document) == builder.render(document)


def test_build_writes_pdf_file(tmp_path, png_bytes):
    document = ColoringBookAssembler().assemble(make_artifacts(png_bytes, range(1)), "Robots", "Mia")

    output = ColoringBookPDFBuilder().build(document, tmp_path / "books" / "robots.pdf")

    assert output.exists()
    assert output.read_bytes().startswith(b"%PDF")
