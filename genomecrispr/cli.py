"""
GenomeCRISPR CLI - database setup, serving and scriptable queries.

Usage:
    genomecrispr init-db --example
    genomecrispr serve --port 8000
    genomecrispr search --query TP53 --effect down
    genomecrispr gene BRCA1
    genomecrispr export --query TP53 --format csv --output tp53.csv
"""

import json
from pathlib import Path
from typing import Any, Dict, Optional

import typer
from rich.console import Console
from rich.table import Table

from genomecrispr import __version__
from genomecrispr.config import get_config
from genomecrispr.core.errors import GenomeCrisprError
from genomecrispr.core.logs import configure_logging
from genomecrispr.db.database import CrisprDatabase
from genomecrispr.models.enums import ExportFormat, ResultView

# Initialize Typer app and Rich console
app = typer.Typer(
    name="genomecrispr",
    help="CRISPR screen data warehouse",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console()


# =============================================================================
# Version callback
# =============================================================================

def version_callback(value: bool) -> None:
    if value:
        console.print(f"[bold blue]GenomeCRISPR[/bold blue] version {__version__}")
        raise typer.Exit()


# =============================================================================
# Main app options
# =============================================================================

@app.callback()
def main(
    version: bool = typer.Option(
        False,
        "--version",
        "-v",
        help="Show version and exit",
        callback=version_callback,
        is_eager=True,
    ),
) -> None:
    """
    GenomeCRISPR - CRISPR screen data warehouse

    Build the database, serve the web interface, and query measurements.
    """
    config = get_config()
    configure_logging(config.log_level, config.log_file)


def _error(message: str) -> typer.Exit:
    console.print(f"[red]Error:[/red] {message}")
    return typer.Exit(1)


def _db_path(db: Optional[Path]) -> Path:
    return db if db is not None else get_config().db_path


def _filter_params(**filters: Optional[str]) -> Dict[str, Any]:
    return {name: value for name, value in filters.items() if value is not None}


# =============================================================================
# Database commands
# =============================================================================

@app.command("init-db")
def init_db(
    db: Optional[Path] = typer.Option(None, "--db", help="Database file (defaults to configured path)"),
    example: bool = typer.Option(True, "--example/--no-example", help="Load the bundled example dataset"),
    force: bool = typer.Option(False, "--force", "-f", help="Replace an existing database"),
) -> None:
    """Create the database schema, optionally with example data."""
    from genomecrispr.db.schema import initialize_database

    path = _db_path(db)
    try:
        loaded = initialize_database(path, with_example_data=example, overwrite=force)
    except GenomeCrisprError as e:
        raise _error(str(e))
    console.print(f"[green]Database ready at {path}[/green] ({loaded} measurements loaded)")


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, "--host", help="Bind address"),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port"),
) -> None:
    """Run the web interface and REST API."""
    import uvicorn
    from genomecrispr.api.server import app as api_app

    config = get_config()
    host = host or config.api_host
    port = port or config.api_port
    console.print(f"[bold blue]GenomeCRISPR[/bold blue] serving {config.db_path} at http://{host}:{port}")
    uvicorn.run(api_app, host=host, port=port)


# =============================================================================
# Query commands
# =============================================================================

@app.command()
def search(
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Gene symbol or Ensembl ID substring"),
    chr: Optional[str] = typer.Option(None, "--chr", help="Chromosome (exact)"),
    strand: Optional[str] = typer.Option(None, "--strand", help="Strand: + or -"),
    effect: Optional[str] = typer.Option(None, "--effect", help="Effect direction: up or down"),
    cellline: Optional[str] = typer.Option(None, "--cellline", help="Cell line substring"),
    condition: Optional[str] = typer.Option(None, "--condition", help="Condition substring"),
    page: int = typer.Option(1, "--page", help="Page number"),
    page_size: Optional[int] = typer.Option(None, "--page-size", "-n", help="Results per page"),
    sort_by: str = typer.Option("rowid", "--sort-by", help="Sort field"),
    sort_order: str = typer.Option("ASC", "--sort-order", help="ASC or DESC"),
    view: ResultView = typer.Option(ResultView.GENES, "--view", help="genes (grouped) or records (flat)"),
    db: Optional[Path] = typer.Option(None, "--db", help="Database file"),
    format: str = typer.Option("json", "--format", "-f", help="Output format: json, tsv, table"),
) -> None:
    """
    Search measurements.

    Examples:
        genomecrispr search --query TP53
        genomecrispr search --effect up --view records --format table
    """
    from genomecrispr.search.service import CrisprSearchService
    from genomecrispr.views.pagination import parse_search_request

    pagination = get_config().pagination
    params = _filter_params(
        query=query, chr=chr, strand=strand, effect=effect,
        cellline=cellline, condition=condition,
    )
    params.update({
        "page": page,
        "limit": page_size,
        "sort_by": sort_by,
        "sort_order": sort_order,
        "view": view.value,
    })
    request = parse_search_request(params, pagination.default_page_size, pagination.max_page_size)

    try:
        with CrisprDatabase(_db_path(db)) as database:
            results = CrisprSearchService(database).search(request)
    except GenomeCrisprError as e:
        raise _error(str(e))

    _output_results(results.model_dump(mode="json"), format)


@app.command()
def gene(
    symbol: str = typer.Argument(..., help="Gene symbol (exact)"),
    db: Optional[Path] = typer.Option(None, "--db", help="Database file"),
    format: str = typer.Option("json", "--format", "-f", help="Output format: json, table"),
) -> None:
    """Show the cell line / sgRNA breakdown of one gene."""
    from genomecrispr.search.service import CrisprSearchService

    try:
        with CrisprDatabase(_db_path(db)) as database:
            view = CrisprSearchService(database).get_gene(symbol)
    except GenomeCrisprError as e:
        raise _error(str(e))

    if format == "table":
        table = Table(title=f"{view.symbol} ({view.ensg or 'no Ensembl ID'}, chr{view.chr})")
        table.add_column("Cell line", style="cyan")
        table.add_column("Condition")
        table.add_column("sgRNAs", justify="right")
        table.add_column("Mean log2fc", style="yellow", justify="right")
        for cl in view.cell_lines:
            mean = "-" if cl.average_effect is None else f"{cl.average_effect:.3f}"
            table.add_row(cl.name or "", cl.condition or "", str(cl.sgrna_count), mean)
        console.print(table)
    else:
        print(json.dumps(view.model_dump(mode="json"), indent=2))


@app.command()
def stats(
    db: Optional[Path] = typer.Option(None, "--db", help="Database file"),
) -> None:
    """Print dataset statistics as JSON."""
    from genomecrispr.search.service import CrisprSearchService

    try:
        with CrisprDatabase(_db_path(db)) as database:
            result = CrisprSearchService(database).stats()
    except GenomeCrisprError as e:
        raise _error(str(e))

    print(json.dumps(result.model_dump(mode="json"), indent=2))


@app.command()
def export(
    query: Optional[str] = typer.Option(None, "--query", "-q", help="Gene symbol or Ensembl ID substring"),
    chr: Optional[str] = typer.Option(None, "--chr", help="Chromosome (exact)"),
    strand: Optional[str] = typer.Option(None, "--strand", help="Strand: + or -"),
    effect: Optional[str] = typer.Option(None, "--effect", help="Effect direction: up or down"),
    cellline: Optional[str] = typer.Option(None, "--cellline", help="Cell line substring"),
    limit: Optional[int] = typer.Option(None, "--limit", help="Maximum number of genes"),
    format: ExportFormat = typer.Option(ExportFormat.JSON, "--format", "-f", help="json or csv"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file (stdout if omitted)"),
    db: Optional[Path] = typer.Option(None, "--db", help="Database file"),
) -> None:
    """Export gene-level search results."""
    from genomecrispr.export.exporter import build_export_request, export_results
    from genomecrispr.search.service import CrisprSearchService

    pagination = get_config().pagination
    params = _filter_params(query=query, chr=chr, strand=strand, effect=effect, cellline=cellline)
    params["limit"] = limit
    request = build_export_request(params, pagination.default_export_size, pagination.max_export_size)

    try:
        with CrisprDatabase(_db_path(db)) as database:
            payload = export_results(CrisprSearchService(database), request, format)
    except GenomeCrisprError as e:
        raise _error(str(e))

    if output:
        output.write_text(payload.content)
        console.print(f"[green]Exported {payload.n_records} genes to {output}[/green]")
    else:
        print(payload.content)


# =============================================================================
# Output helpers
# =============================================================================

def _output_results(results: dict, format: str) -> None:
    """Output a search payload in the requested format."""
    if format == "json":
        print(json.dumps(results, indent=2, default=str))

    elif format == "tsv":
        lines = []
        if results.get("view") == ResultView.RECORDS.value:
            headers = ["id", "symbol", "chr", "start", "end", "strand", "log2fc", "cellline"]
            lines.append("\t".join(headers))
            for record in results["results"]:
                lines.append("\t".join("" if record.get(h) is None else str(record.get(h)) for h in headers))
        else:
            headers = ["symbol", "ensg", "chr", "total_sgrnas", "average_effect"]
            lines.append("\t".join(headers))
            for gene_view in results["results"]:
                lines.append("\t".join("" if gene_view.get(h) is None else str(gene_view.get(h)) for h in headers))
        print("\n".join(lines))

    elif format == "table":
        table = Table(title=f"{results['total_rows']} results (page {results['page']}/{results['total_pages']})")
        if results.get("view") == ResultView.RECORDS.value:
            for column in ("ID", "Symbol", "Location", "Strand", "log2fc", "Cell line"):
                table.add_column(column)
            for record in results["results"]:
                table.add_row(
                    str(record["id"]),
                    record.get("symbol") or "",
                    f"chr{record.get('chr')}:{record.get('start')}-{record.get('end')}",
                    record.get("strand") or "",
                    "-" if record.get("log2fc") is None else f"{record['log2fc']:.3f}",
                    record.get("cellline") or "",
                )
        else:
            for column in ("Symbol", "Ensembl ID", "Chr", "sgRNAs", "Mean log2fc"):
                table.add_column(column)
            for gene_view in results["results"]:
                mean = gene_view.get("average_effect")
                table.add_row(
                    gene_view.get("symbol") or "",
                    gene_view.get("ensg") or "",
                    gene_view.get("chr") or "",
                    str(gene_view["total_sgrnas"]),
                    "-" if mean is None else f"{mean:.3f}",
                )
        console.print(table)

    else:
        raise _error(f"Unknown output format: {format}")


# =============================================================================
# Entry point
# =============================================================================

if __name__ == "__main__":
    app()
