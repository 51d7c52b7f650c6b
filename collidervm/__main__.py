from .tools import run_cli


run_cli()
