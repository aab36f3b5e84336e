"""CLI entrypoint: Typer app definition and command registration"""

import typer

from vizpdf.cli.commands import convert_cmd, detect_cmd


app = typer.Typer(name="vizpdf", no_args_is_help=True, help="Render embedded diagrams into searchable PDFs")

app.command(name="convert")(convert_cmd)
app.command(name="detect")(detect_cmd)
