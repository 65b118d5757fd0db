"""Built-in CLI sub-commands registered on the root Typer application."""
