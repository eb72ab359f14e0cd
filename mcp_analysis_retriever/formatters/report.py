"""
Merged report formatter.

Combines the portfolio outcome and an optional type-specific outcome
into one titled text document.
"""

from mcp_analysis_retriever.upstream import FetchOutcome, PlainMessage, StructuredAnalysis

PORTFOLIO_HEADER = "--- ANÁLISIS DE PORTAFOLIO ---"
MARKET_CONTEXT_HEADER = "--- CONTEXTO DE MERCADO ---"


def section_header(analysis_type: str) -> str:
    """ticker_info -> --- ANÁLISIS DE TICKER INFO ---"""
    return f"--- ANÁLISIS DE {analysis_type.replace('_', ' ').upper()} ---"


def _section(header: str, body: str) -> list[str]:
    return [header, body, ""]


def format_report(
    portfolio: FetchOutcome,
    specific: FetchOutcome | None = None,
    analysis_type: str | None = None,
) -> str:
    """Format the merged report

    Structured portfolio results contribute the analysis plus the market
    context (when the upstream sent one). Plain messages, such as "nothing
    found", appear verbatim under the same header.
    """
    lines: list[str] = []

    match portfolio:
        case StructuredAnalysis(full_analysis=full, market_summary=summary):
            lines += _section(PORTFOLIO_HEADER, full)
            if summary:
                lines += _section(MARKET_CONTEXT_HEADER, summary)
        case PlainMessage(text=text):
            lines += _section(PORTFOLIO_HEADER, text)

    if specific is not None and analysis_type:
        header = section_header(analysis_type)
        match specific:
            case StructuredAnalysis(full_analysis=full):
                lines += _section(header, full)
            case PlainMessage(text=text):
                lines += _section(header, text)

    return "\n".join(lines).rstrip()
