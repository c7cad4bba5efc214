import io
from collections.abc import Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.platypus import Flowable, Paragraph, SimpleDocTemplate, Spacer, Table, TableStyle

from sqllog_report.domain import PatternStat, Percentiles, ReportResult
from sqllog_report.output.base import anomaly_cells, format_percentile_set, format_timestamp

TITLE = "SQL Log Report"

ANOMALY_HEADERS = ["DB", "Exec Time (ms)", "Exec Count", "Reasons", "Suggestions", "SQL"]
ANOMALY_WIDTHS = [20 * mm, 28 * mm, 22 * mm, 33 * mm, 32 * mm, 55 * mm]
PATTERN_WIDTHS = [140 * mm, 30 * mm]

MAX_PATTERN_CHARS = 160

GRID_STYLE = TableStyle(
    [
        ("GRID", (0, 0), (-1, -1), 0.5, colors.black),
        ("BACKGROUND", (0, 0), (-1, 0), colors.lightgrey),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
        ("LEFTPADDING", (0, 0), (-1, -1), 3),
        ("RIGHTPADDING", (0, 0), (-1, -1), 3),
    ]
)


class PdfReportOutput:
    """A4 portrait report rendered with reportlab platypus."""

    def __init__(self) -> None:
        styles = getSampleStyleSheet()
        self._title = styles["Title"]
        self._heading = styles["Heading2"]
        self._subheading = styles["Heading4"]
        self._body = styles["Normal"]
        self._header_cell = ParagraphStyle(
            "HeaderCell", parent=styles["Normal"], fontName="Helvetica-Bold", fontSize=9, leading=11
        )
        # CJK word wrap breaks long unspaced tokens anywhere
        self._cell = ParagraphStyle(
            "Cell", parent=styles["Normal"], fontSize=8, leading=10, wordWrap="CJK"
        )

    @property
    def name(self) -> str:
        return "pdf"

    @property
    def media_type(self) -> str:
        return "application/pdf"

    @property
    def extension(self) -> str:
        return "pdf"

    def render(self, report: ReportResult) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            title=TITLE,
            leftMargin=10 * mm,
            rightMargin=10 * mm,
            topMargin=12 * mm,
            bottomMargin=12 * mm,
        )

        story: list[Flowable] = []
        story += self._header(report)
        story += self._summary(report)
        story += self._percentiles(report)
        story += self._patterns(report)
        story += self._anomalies(report)

        doc.build(story)
        return buffer.getvalue()

    def _header(self, report: ReportResult) -> list[Flowable]:
        window = report.summary.window
        return [
            Paragraph(TITLE, self._title),
            self._text(
                f"Generated at: {format_timestamp(report.generated_at)} ({report.timezone})"
            ),
            self._text(
                f"Range: {format_timestamp(window.start)}  to  {format_timestamp(window.end)}"
            ),
            Spacer(1, 4 * mm),
        ]

    def _summary(self, report: ReportResult) -> list[Flowable]:
        summary = report.summary
        flowables: list[Flowable] = [
            Paragraph("Summary", self._heading),
            self._text(f"Total queries: {summary.total_queries}"),
            self._text(f"Anomaly count: {summary.anomaly_count}"),
            self._text(f"Suggestion count: {summary.suggestion_count}"),
        ]
        if summary.by_database:
            flowables.append(self._text("By DB:"))
            for name in sorted(summary.by_database):
                flowables.append(self._text(f" - {name}: {summary.by_database[name]}"))
        flowables.append(Spacer(1, 4 * mm))
        return flowables

    def _percentiles(self, report: ReportResult) -> list[Flowable]:
        flowables: list[Flowable] = []
        if not report.percentiles_overall.is_empty:
            flowables.append(Paragraph("Percentiles (Overall)", self._heading))
            flowables += self._percentile_lines(report.percentiles_overall, prefix="")

        if report.percentiles_by_database:
            flowables.append(Paragraph("Percentiles (By DB)", self._heading))
            for name in sorted(report.percentiles_by_database):
                flowables.append(self._text(f"DB: {name}"))
                flowables += self._percentile_lines(
                    report.percentiles_by_database[name], prefix=" - "
                )
        return flowables

    def _percentile_lines(self, percentiles: Percentiles, prefix: str) -> list[Flowable]:
        return [
            self._text(f"{prefix}exec_time_ms: {format_percentile_set(percentiles.exec_time_ms)}"),
            self._text(f"{prefix}exec_count: {format_percentile_set(percentiles.exec_count)}"),
        ]

    def _patterns(self, report: ReportResult) -> list[Flowable]:
        flowables: list[Flowable] = []
        if report.top_patterns_overall:
            flowables.append(Paragraph("Top Patterns (Overall)", self._heading))
            flowables.append(self._pattern_table(report.top_patterns_overall))

        if report.top_patterns_by_database:
            flowables.append(Paragraph("Top Patterns (By DB)", self._heading))
            for name in sorted(report.top_patterns_by_database):
                flowables.append(Paragraph(f"DB: {escape(name)}", self._subheading))
                flowables.append(self._pattern_table(report.top_patterns_by_database[name]))
        return flowables

    def _pattern_table(self, stats: Sequence[PatternStat]) -> Flowable:
        rows = [[self._cell_text(label, self._header_cell) for label in ("Pattern", "Occurrences")]]
        for stat in stats:
            pattern = _truncate(stat.pattern.replace("\n", " "), MAX_PATTERN_CHARS)
            rows.append([self._cell_text(pattern), self._cell_text(str(stat.occurrences))])
        table = Table(rows, colWidths=PATTERN_WIDTHS, repeatRows=1, splitInRow=1)
        table.setStyle(GRID_STYLE)
        return table

    def _anomalies(self, report: ReportResult) -> list[Flowable]:
        header, *body = anomaly_table_rows(report)
        rows = [[self._cell_text(label, self._header_cell) for label in header]]
        rows += [[self._cell_text(cell) for cell in cells] for cells in body]

        # rows taller than a page split across pages under the repeated header
        table = Table(rows, colWidths=ANOMALY_WIDTHS, repeatRows=1, splitInRow=1)
        table.setStyle(GRID_STYLE)
        return [Spacer(1, 4 * mm), Paragraph("Anomalies", self._heading), table]

    def _text(self, text: str) -> Paragraph:
        return Paragraph(escape(text), self._body)

    def _cell_text(self, text: str, style: ParagraphStyle | None = None) -> Paragraph:
        return Paragraph(escape(text), style or self._cell)


def anomaly_table_rows(report: ReportResult) -> list[list[str]]:
    """Header plus one row of full, untruncated cell text per listed anomaly."""
    return [list(ANOMALY_HEADERS)] + [anomaly_cells(anomaly) for anomaly in report.anomalies]


def _truncate(text: str, limit: int) -> str:
    if len(text) <= limit:
        return text
    return text[: limit - 3] + "..."
