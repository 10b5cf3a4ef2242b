"""CLI entrypoint: Typer app definition and command registration"""

import typer

from mystfmt.cli.commands import analyze_cmd, format_cmd, main_callback, verify_cmd


app = typer.Typer(name="mystfmt", no_args_is_help=True, help="Rule-based MyST formatting with content verification")

app.callback()(main_callback)
app.command(name="format")(format_cmd)
app.command(name="verify")(verify_cmd)
app.command(name="analyze")(analyze_cmd)
