from rich.console import Console

# stdout carries exported data, so every diagnostic goes to stderr
console = Console(stderr=True)


def error(message: str):
    """Display error message"""
    console.print(f"✖ {message}", style="bold red", markup=False, soft_wrap=True)


def info(message: str):
    """Display info message"""
    console.print(f"{message}", style="cyan")
