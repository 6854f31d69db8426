"""
Export of search results as JSON or CSV.

Exports run a gene-level search (page 1, sorted by symbol) with the
export page-size bound and render the resulting gene views.
"""

from __future__ import annotations

import csv
import io
import json
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

from genomecrispr import __version__
from genomecrispr.core.errors import InvalidParameterError
from genomecrispr.models.data_classes import GeneView, SearchRequest, SearchResults
from genomecrispr.models.enums import ExportFormat, ResultView, SortDirection, SortField
from genomecrispr.search.service import CrisprSearchService
from genomecrispr.views.pagination import parse_search_request


CSV_COLUMNS = [
    "symbol", "ensg", "chr", "cellline", "condition", "cas", "screentype", "pubmed",
    "id", "sequence", "start", "end", "strand", "log2fc", "fold_change", "effect",
    "rc_initial", "rc_final",
]


@dataclass(frozen=True)
class ExportPayload:
    """Rendered export ready to be written or served."""
    content: str
    media_type: str
    filename: str
    n_records: int


def parse_export_format(value: Optional[str]) -> ExportFormat:
    """Parse the export format, rejecting anything but json/csv."""
    text = (value or ExportFormat.JSON.value).strip().lower()
    try:
        return ExportFormat(text)
    except ValueError:
        allowed = ", ".join(f.value for f in ExportFormat)
        raise InvalidParameterError(f"Invalid export format '{value}'. Must be one of: {allowed}")


def build_export_request(
    params: Mapping[str, Any],
    default_size: int,
    max_size: int,
) -> SearchRequest:
    """Gene-level request for an export; caller sort directives are replaced."""
    request = parse_search_request(params, default_size, max_size)
    return request.model_copy(update={
        "page": 1,
        "sort_by": SortField.SYMBOL.value,
        "sort_order": SortDirection.ASC.value,
        "view": ResultView.GENES,
    })


def flatten_gene_views(views: List[GeneView]) -> List[Dict[str, Any]]:
    """One dict per sgRNA with its gene and context columns repeated."""
    rows = []
    for gene in views:
        for cell_line in gene.cell_lines:
            for sg in cell_line.sgrnas:
                rows.append({
                    "symbol": gene.symbol,
                    "ensg": gene.ensg,
                    "chr": gene.chr,
                    "cellline": cell_line.name,
                    "condition": cell_line.condition,
                    "cas": cell_line.cas,
                    "screentype": cell_line.screentype,
                    "pubmed": cell_line.pubmed,
                    "id": sg.id,
                    "sequence": sg.sequence,
                    "start": sg.start,
                    "end": sg.end,
                    "strand": sg.strand,
                    "log2fc": sg.log2fc,
                    "fold_change": sg.fold_change,
                    "effect": sg.effect,
                    "rc_initial": sg.rc_initial,
                    "rc_final": sg.rc_final,
                })
    return rows


def render_json(results: SearchResults[GeneView], export_time: datetime) -> str:
    export_data = {
        "genomecrispr_version": __version__,
        "data": [view.model_dump(mode="json") for view in results.results],
        "metadata": {
            "export_date": export_time.isoformat(),
            "total_records": len(results.results),
            "filters": results.filters.model_dump(),
        },
    }
    return json.dumps(export_data, indent=2)


def render_csv(results: SearchResults[GeneView]) -> str:
    output = io.StringIO()
    writer = csv.DictWriter(output, fieldnames=CSV_COLUMNS, lineterminator="\n")
    writer.writeheader()
    for row in flatten_gene_views(results.results):
        writer.writerow({k: ("" if v is None else v) for k, v in row.items()})
    return output.getvalue()


def export_results(
    service: CrisprSearchService,
    request: SearchRequest,
    fmt: ExportFormat,
    export_time: Optional[datetime] = None,
) -> ExportPayload:
    """
    Run the export search and render it.

    Args:
        service: Search service bound to an open database
        request: Request built with build_export_request()
        fmt: Output format
        export_time: Timestamp for metadata and filename (defaults to now)
    """
    export_time = export_time or datetime.now()
    results = service.search_genes(request)
    stamp = export_time.strftime('%Y%m%d_%H%M%S')

    if fmt == ExportFormat.CSV:
        content = render_csv(results)
        media_type = "text/csv"
    else:
        content = render_json(results, export_time)
        media_type = "application/json"

    return ExportPayload(
        content=content,
        media_type=media_type,
        filename=f"genomecrispr_export_{stamp}.{fmt.value}",
        n_records=len(results.results),
    )
