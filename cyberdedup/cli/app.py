"""Main CLI application."""

import typer
from dotenv import load_dotenv

# Load .env file if it exists
load_dotenv()

from .check import check_command
from .index import index_command
from .resolutions import resolutions_command
from .init import init_command
from .run import run_command
from .updates import updates_command

app = typer.Typer(
    name="cyberdedup",
    help="Duplicate and update detection for cybersecurity news articles",
    no_args_is_help=True,
)

# Register commands
app.command("init")(init_command)
app.command("index")(index_command)
app.command("run")(run_command)
app.command("check")(check_command)
app.command("updates")(updates_command)
app.command("resolutions")(resolutions_command)


if __name__ == "__main__":
    app()
