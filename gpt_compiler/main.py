#!/usr/bin/env python3
"""
GPT Compiler - Main Entry Point

Usage:
    gpt-compiler compile hello.gpt          # Compile a single document
    gpt-compiler watch src/                 # Recompile documents on change
    gpt-compiler new hello -l python        # Create a document from template
    gpt-compiler --help                     # Show help

Configuration comes from the environment (or a .env file):
    OPENROUTER_API_KEY      API key for the generation service (required)
    AI_MODEL                Model identifier
    DEFAULT_OUTPUT_LANG     Language used when a document has no @language
"""

import argparse
import asyncio
import signal
import sys
from pathlib import Path
from typing import Optional, List

import httpx
from rich.console import Console

from gpt_compiler import __version__
from gpt_compiler.client import CompilationClient
from gpt_compiler.config import CompilerConfig
from gpt_compiler.exceptions import GptCompilerError
from gpt_compiler.logging_config import setup_logging
from gpt_compiler.pipeline import PipelineOrchestrator, PipelineOutcome
from gpt_compiler.templates import create_document
from gpt_compiler.watcher import WatchLoop

console = Console()


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for CLI"""
    parser = argparse.ArgumentParser(
        prog="gpt-compiler",
        description="Compile English to code using AI",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  gpt-compiler compile app.gpt             Compile app.gpt next to itself
  gpt-compiler watch .                     Watch the current directory
  gpt-compiler new todo --lang typescript  Create todo.gpt

Document format:
  @language: python
  @output: hello.py

  Print hello world
        """
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging"
    )
    parser.add_argument(
        "-m", "--model",
        type=str,
        help="Model identifier (overrides AI_MODEL)"
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to JSON config file"
    )
    parser.add_argument(
        "--env-file",
        type=str,
        help="Path to .env file (default: search from current directory)"
    )
    parser.add_argument(
        "--log-file",
        type=str,
        help="Also write logs to this file"
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit structured JSON logs"
    )

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    compile_parser = subparsers.add_parser("compile", help="Compile a single .gpt file to code")
    compile_parser.add_argument("file", help=".gpt file to compile")

    watch_parser = subparsers.add_parser("watch", help="Watch for changes in .gpt files and compile them")
    watch_parser.add_argument("dir", nargs="?", default=".", help="Directory to watch (default: .)")

    new_parser = subparsers.add_parser("new", help="Create a new .gpt file with template")
    new_parser.add_argument("file", help="Name of the file to create")
    new_parser.add_argument(
        "-l", "--lang",
        default="python",
        help="Target language (default: python)"
    )

    return parser


def build_config(args: argparse.Namespace) -> CompilerConfig:
    """Environment first, then config file, then command-line flags"""
    config = CompilerConfig.load_default(env_file=args.env_file)
    if args.config:
        config.load_from_file(args.config)
    if args.model:
        config.model = args.model
    if args.verbose:
        config.verbose = True
    if args.log_file:
        config.log_file = args.log_file
    if args.json_logs:
        config.json_logs = True
    return config


def print_outcome(path: Path, outcome: PipelineOutcome) -> None:
    if outcome.success:
        console.print(
            f"[green]✅ Code generated successfully:[/green] {outcome.output_path} "
            f"[dim]({outcome.language})[/dim]"
        )
    else:
        console.print(f"[red]❌ Error processing {path}:[/red] {outcome.error}")


async def run_compile(config: CompilerConfig, file_path: Path) -> PipelineOutcome:
    """Compile one document"""
    orchestrator = PipelineOrchestrator(config, CompilationClient(config))
    outcome = await orchestrator.process_document(file_path)
    print_outcome(file_path, outcome)
    return outcome


async def run_watch(config: CompilerConfig, directory: Path) -> None:
    """Watch a directory until SIGINT/SIGTERM"""
    async with httpx.AsyncClient(timeout=config.request_timeout) as http_client:
        orchestrator = PipelineOrchestrator(config, CompilationClient(config, http_client))
        watch = WatchLoop(config, orchestrator, on_outcome=print_outcome)

        stop_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, stop_event.set)
            except NotImplementedError:
                # Windows: Ctrl+C surfaces as KeyboardInterrupt instead
                pass

        watch.start(directory)
        console.print(f"[dim]Watching for {config.document_extension} files in: {watch.root}[/dim]")
        console.print("[bold cyan]GPT Compiler is running. Press Ctrl+C to stop.[/bold cyan]")

        try:
            await stop_event.wait()
        finally:
            watch.stop()
            if watch.in_flight:
                console.print(f"[dim]Waiting for {watch.in_flight} compilation(s) to finish...[/dim]")
            await watch.drain()
            console.print("[yellow]GPT Compiler stopped[/yellow]")


def _command_compile(config: CompilerConfig, file_arg: str) -> int:
    file_path = Path(file_arg).resolve()
    if not file_path.exists():
        console.print(f"[red]Error: File not found: {file_path}[/red]")
        return 1
    if not file_path.name.endswith(config.document_extension):
        console.print(f"[red]Error: Only {config.document_extension} files can be compiled[/red]")
        return 1

    config.validate()
    console.print(f"Compiling file: {file_path}")
    outcome = asyncio.run(run_compile(config, file_path))
    return 0 if outcome.success else 1


def _command_watch(config: CompilerConfig, dir_arg: str) -> int:
    watch_path = Path(dir_arg).resolve()
    if not watch_path.is_dir():
        console.print(f"[red]Error: Directory not found: {watch_path}[/red]")
        return 1

    config.validate()
    asyncio.run(run_watch(config, watch_path))
    return 0


def _command_new(config: CompilerConfig, file_arg: str, language: str) -> int:
    path = create_document(file_arg, language, config.document_extension)
    console.print(f"[green]Created new file:[/green] {path}")
    return 0


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point"""
    parser = create_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    try:
        config = build_config(args)
        setup_logging(config.effective_log_level, config.log_file, config.json_logs)

        if args.command == "compile":
            exit_code = _command_compile(config, args.file)
        elif args.command == "watch":
            exit_code = _command_watch(config, args.dir)
        else:
            exit_code = _command_new(config, args.file, args.lang)

    except KeyboardInterrupt:
        console.print("\n[yellow]GPT Compiler stopped[/yellow]")
        exit_code = 0
    except GptCompilerError as e:
        # ConfigError lands here before any document is touched
        console.print(f"[red]Error: {e.message}[/red]")
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
