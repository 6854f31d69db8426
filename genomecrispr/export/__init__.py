"""Export package."""

from genomecrispr.export.exporter import (
    ExportPayload,
    build_export_request,
    export_results,
    flatten_gene_views,
    parse_export_format,
)

__all__ = [
    "ExportPayload",
    "build_export_request",
    "export_results",
    "flatten_gene_views",
    "parse_export_format",
]
