"""Document to structured-summary pipeline.

Short documents, and anything with images, go to the model in one call.
Long text-only documents are summarized chunk by chunk and the partial
summaries merged in a final call.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Sequence, Tuple

from pydantic import ValidationError

from paperbrief.errors import BadInput, UnreadableScanned, UpstreamMalformed
from paperbrief.schemas import SummaryResult
from paperbrief.services.image_service import normalize_image
from paperbrief.services.openai_service import image_part, text_part
from paperbrief.services.pdf_service import extract_pdf_text, rasterize_pdf_pages

logger = logging.getLogger(__name__)

ACADEMIC_GUIDE = "\n".join([
    "ONLY return JSON. No markdown fences. No extra text.",
    'Schema: {"title"?:string,"summary":string,"keywords":string[]}',
    "Write in the same language as the document.",
    "Write an ACADEMIC summary suitable for a course assignment.",
    "Use a structured format INSIDE the summary field (Markdown headings are allowed inside the string).",
    "Required structure inside summary:",
    "1) ## Purpose and Scope",
    "2) ## Key Concepts and Definitions (briefly define the important terms)",
    "3) ## Architecture / Mechanism (step by step: how it works)",
    "4) ## Components and Examples (services, tools, use cases)",
    "5) ## Comparison (only if the document compares approaches or technologies)",
    "6) ## Conclusion (main takeaways, why it matters)",
    "Avoid repetition and filler sentences. KEEP technical terms.",
    "keywords: 8-12 terms that are meaningful for the subject.",
])

CHUNK_PROMPT = "\n".join([
    "ONLY return JSON.",
    'Schema: {"summary":string,"keywords":string[]}',
    "Write in the same language as the text.",
    "Write an ACADEMIC chunk summary.",
    "summary: 10-14 sentences.",
    "Must include key definitions/terms mentioned in this chunk.",
    "keywords: 6-10.",
])

MERGE_PROMPT = "\n".join([
    "Merge the chunk summaries into ONE coherent academic summary.",
    "Remove duplicates but keep depth.",
    "If the document includes a comparison section, it MUST be covered.",
])


@dataclass(frozen=True)
class SummarizerSettings:
    long_doc_threshold: int = 12000
    chunk_size: int = 9000
    max_text_chars: int = 12000
    max_images: int = 4
    auto_pdf_pages: int = 2
    pdf_page_cap: int = 20
    image_max_width: int = 1400
    image_quality: int = 80

    @classmethod
    def from_config(cls, cfg) -> "SummarizerSettings":
        return cls(
            long_doc_threshold=int(cfg.get("LONG_DOC_THRESHOLD", 12000)),
            chunk_size=int(cfg.get("CHUNK_SIZE", 9000)),
            max_text_chars=int(cfg.get("MAX_TEXT_CHARS", 12000)),
            max_images=int(cfg.get("MAX_MODEL_IMAGES", 4)),
            auto_pdf_pages=int(cfg.get("AUTO_PDF_PAGES", 2)),
            pdf_page_cap=int(cfg.get("PDF_TEXT_PAGE_CAP", 20)),
            image_max_width=int(cfg.get("IMAGE_MAX_WIDTH", 1400)),
            image_quality=int(cfg.get("IMAGE_QUALITY", 80)),
        )


@dataclass
class SummaryOutcome:
    result: SummaryResult
    source: str
    input_text: str
    pdf_name: Optional[str]
    image_count: int


def chunk_text(text: str, chunk_size: int = 9000) -> List[str]:
    t = (text or "").strip()
    if not t:
        return []
    return [t[i:i + chunk_size] for i in range(0, len(t), chunk_size)]


def length_guidance(text: str) -> str:
    """Target sentence count for the final summary, by input length."""
    n = len(text or "")
    if n == 0:
        return "18-24"
    if n < 10000:
        return "16-22"
    if n < 40000:
        return "24-34"
    return "34-45"


def classify_source(has_pdf: bool, has_images: bool) -> str:
    if has_pdf and has_images:
        return "pdf+image"
    if has_pdf:
        return "pdf"
    return "image"


def _slice_json_object(raw: str) -> Optional[str]:
    start = raw.find("{")
    end = raw.rfind("}")
    if start < 0 or end <= start:
        return None
    return raw[start:end + 1]


def parse_summary_response(raw: str) -> SummaryResult:
    """Read the model's reply as a ``SummaryResult``.

    The reply is parsed as JSON directly; if that fails, the text between
    the first ``{`` and the last ``}`` is tried instead. Anything that still
    does not validate raises ``UpstreamMalformed``.
    """
    raw = raw or ""
    try:
        obj = json.loads(raw)
    except ValueError:
        sliced = _slice_json_object(raw)
        if sliced is None:
            raise UpstreamMalformed(raw)
        try:
            obj = json.loads(sliced)
        except ValueError:
            raise UpstreamMalformed(raw)
    try:
        return SummaryResult.model_validate(obj)
    except ValidationError as e:
        logger.warning("Model JSON failed schema validation: %s", e.errors()[:3])
        raise UpstreamMalformed(raw) from e


def summarize_chunks(client, text: str, guidance: str, chunk_size: int = 9000) -> str:
    chunks = chunk_text(text, chunk_size)
    if not chunks:
        raise BadInput("PDF text is empty.")

    logger.info("Summarizing %d chunks before merge", len(chunks))
    partials: List[str] = []
    for i, chunk in enumerate(chunks, start=1):
        raw = client.generate([text_part(f"{CHUNK_PROMPT}\n\nTEXT:\n{chunk}")])
        partials.append(f"CHUNK_{i}: {raw}")

    merge = (
        f"{ACADEMIC_GUIDE}\n"
        f"Length guidance (sentences): {guidance}.\n"
        f"{MERGE_PROMPT}\n\n"
        "CHUNK_SUMMARIES:\n" + "\n\n".join(partials)
    )
    return client.generate([text_part(merge)])


def build_single_call_parts(
    pdf_text: str,
    guidance: str,
    images: Sequence[Tuple[str, bytes]],
    max_text_chars: int = 12000,
) -> List[Dict[str, Any]]:
    intro = f"{ACADEMIC_GUIDE}\nLength guidance (sentences): {guidance}.\n\n"
    if pdf_text:
        intro += f"PDF TEXT:\n{pdf_text[:max_text_chars]}\n\n"
    else:
        intro += "PDF TEXT: (none / scanned)\n\n"
    intro += "IMAGES attached below.\n" if images else "IMAGES: (none)\n"

    parts = [text_part(intro)]
    for mime, data in images:
        parts.append(image_part(mime, data))
    return parts


def summarize_upload(
    client,
    settings: SummarizerSettings,
    pdf_bytes: Optional[bytes] = None,
    pdf_name: Optional[str] = None,
    images: Sequence[bytes] = (),
) -> SummaryOutcome:
    """Summarize an uploaded PDF and/or images.

    ``images`` are the raw uploaded image files. The returned outcome has
    been validated and is ready to persist.
    """
    has_pdf = pdf_bytes is not None
    if not has_pdf and not images:
        raise BadInput("Upload a PDF or at least one image.")

    pdf_text = extract_pdf_text(pdf_bytes, max_pages=settings.pdf_page_cap) if has_pdf else ""
    guidance = length_guidance(pdf_text)

    auto_pages: List[Tuple[str, bytes]] = []
    if has_pdf and not pdf_text and not images:
        logger.info("PDF has no text layer, rendering up to %d pages", settings.auto_pdf_pages)
        auto_pages = rasterize_pdf_pages(
            pdf_bytes,
            max_pages=settings.auto_pdf_pages,
            max_width=settings.image_max_width,
            quality=settings.image_quality,
        )
        if not auto_pages:
            raise UnreadableScanned()

    has_images = bool(images) or bool(auto_pages)

    if len(pdf_text) > settings.long_doc_threshold and not has_images:
        raw = summarize_chunks(client, pdf_text, guidance, settings.chunk_size)
    else:
        if images:
            attached = [
                normalize_image(data, max_width=settings.image_max_width, quality=settings.image_quality)
                for data in list(images)[:settings.max_images]
            ]
        else:
            attached = auto_pages[:settings.max_images]
        raw = client.generate(build_single_call_parts(pdf_text, guidance, attached, settings.max_text_chars))

    result = parse_summary_response(raw)
    return SummaryOutcome(
        result=result,
        source=classify_source(has_pdf, has_images),
        input_text=pdf_text,
        pdf_name=pdf_name,
        image_count=len(images) if images else len(auto_pages),
    )
