"""Certificate text assembly and PDF rendering.

Only the text is fixed (title derivation and truncation, filename, the lines on
the page); the layout can change freely.
"""

from __future__ import annotations
import re
from dataclasses import dataclass
from datetime import date
from io import BytesIO
from typing import List, Optional, Tuple

from reportlab.lib.pagesizes import A4, landscape
from reportlab.lib.units import mm
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from .errors import ValidationError
from .schemas import KIUResult

TITLE_SOURCE_LIMIT = 100
TITLE_DISPLAY_LIMIT = 60
SUMMARY_WRAP_WIDTH = 200 * mm

_NON_ALNUM_RE = re.compile(r"[^a-z0-9]+")


def derive_title(original_text: str) -> str:
	return original_text.split(".")[0][:TITLE_SOURCE_LIMIT].strip()


def certificate_filename(title: str) -> str:
	slug = _NON_ALNUM_RE.sub("-", title.lower()).strip("-")
	return f"{slug}-certificate.pdf"


def format_title(title: str) -> str:
	if len(title) > TITLE_DISPLAY_LIMIT:
		return title[: TITLE_DISPLAY_LIMIT - 3] + "..."
	return title


def build_summary(kiu: KIUResult) -> str:
	return (
		f"This assessment evaluated comprehension and knowledge of key concepts at {kiu.level.value} "
		f"({format_score(kiu.graduated_score)} KIU). The material demonstrated a complexity score of {kiu.material_complexity} "
		f"with a baseline knowledge requirement of {kiu.baseline_knowledge} KIU."
	)


def format_issue_date(issued_on: date) -> str:
	return f"{issued_on.strftime('%B')} {issued_on.day}, {issued_on.year}"


def format_score(value: float) -> str:
	# 10.0 prints as "10", 1.5 as "1.5"
	return f"{value:.2f}".rstrip("0").rstrip(".")


@dataclass(frozen=True)
class CertificateContent:
	name: str
	title: str
	score: int
	kiu_score: str
	level: str
	summary_lines: List[str]
	issued: str

	def lines(self) -> List[str]:
		return [
			"Certificate of Achievement",
			"This is to certify that",
			self.name,
			"has successfully completed",
			self.title,
			f"with a score of {self.score}%",
			f"Knowledge Impact Units (KIU): {self.kiu_score}",
			f"Level: {self.level}",
			*self.summary_lines,
			f"Issued on {self.issued}",
		]


def build_content(
	name: str,
	title: str,
	score: int,
	summary: str,
	kiu: KIUResult,
	issued_on: Optional[date] = None,
) -> CertificateContent:
	if not name or not name.strip():
		raise ValidationError("Name is required for a certificate")
	if not 0 <= score <= 100:
		raise ValidationError("Score must be between 0 and 100")
	return CertificateContent(
		name=name.strip(),
		title=format_title(title),
		score=score,
		kiu_score=format_score(kiu.graduated_score),
		level=kiu.level.value,
		summary_lines=simpleSplit(summary, "Helvetica", 12, SUMMARY_WRAP_WIDTH),
		issued=format_issue_date(issued_on or date.today()),
	)


# (y from top in mm, font, size) for the fixed lines above the summary
_HEADER_LAYOUT = [
	(50, "Helvetica-Bold", 40),
	(80, "Helvetica", 24),
	(95, "Helvetica-Bold", 32),
	(115, "Helvetica", 16),
	(130, "Helvetica-Bold", 24),
	(145, "Helvetica", 18),
	(155, "Helvetica", 14),
	(162, "Helvetica", 14),
]


def render_pdf(content: CertificateContent) -> bytes:
	buffer = BytesIO()
	width, height = landscape(A4)
	c = canvas.Canvas(buffer, pagesize=(width, height))
	c.setTitle(f"Certificate - {content.title}")
	cx = width / 2

	def y(from_top_mm: float) -> float:
		return height - from_top_mm * mm

	c.setFillColorRGB(252 / 255, 253 / 255, 254 / 255)
	c.rect(0, 0, width, height, stroke=0, fill=1)
	c.setStrokeColorRGB(37 / 255, 99 / 255, 235 / 255)
	c.setLineWidth(2 * mm)
	c.rect(15 * mm, 15 * mm, width - 30 * mm, height - 30 * mm)
	c.setStrokeColorRGB(59 / 255, 130 / 255, 246 / 255)
	c.setLineWidth(0.5 * mm)
	c.rect(20 * mm, 20 * mm, width - 40 * mm, height - 40 * mm)

	lines = content.lines()
	header, body, issued = lines[: len(_HEADER_LAYOUT)], lines[len(_HEADER_LAYOUT) : -1], lines[-1]

	for index, (line, (top, font, size)) in enumerate(zip(header, _HEADER_LAYOUT)):
		if index == 0:
			c.setFillColorRGB(30 / 255, 64 / 255, 175 / 255)
		c.setFont(font, size)
		c.drawCentredString(cx, y(top), line)
		if index == 0:
			c.setStrokeColorRGB(30 / 255, 64 / 255, 175 / 255)
			c.line(74 * mm, y(55), 223 * mm, y(55))
			c.setFillColorRGB(31 / 255, 41 / 255, 55 / 255)

	c.setFont("Helvetica", 12)
	line_y = 171.0
	for line in body:
		c.drawCentredString(cx, y(line_y), line)
		line_y += 5
	c.setFont("Helvetica", 14)
	c.drawCentredString(cx, y(max(line_y + 3, 185)), issued)

	c.showPage()
	c.save()
	buffer.seek(0)
	return buffer.read()


def compose(
	name: str,
	title: str,
	score: int,
	summary: str,
	kiu: KIUResult,
	issued_on: Optional[date] = None,
) -> Tuple[bytes, str]:
	content = build_content(name, title, score, summary, kiu, issued_on)
	return render_pdf(content), certificate_filename(title)
