#!/usr/bin/env python3
"""VoiceScore command line interface.

Commands:
    serve       Run the websocket relay and the HTTP endpoints
    score       Score a transcript you already have
    transcribe  Upload a recording, transcribe it and score it
    stream      Stream a WAV file through a running relay
"""

import asyncio
import json as jsonlib
import os
import sys
from pathlib import Path

import rich_click as click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from . import __version__
from .core.config import ConfigLoader, get_config
from .scoring import ScoreMetrics, score

click.rich_click.USE_RICH_MARKUP = True
click.rich_click.STYLE_OPTION = "#ff79c6"
click.rich_click.STYLE_ARGUMENT = "#8be9fd"
click.rich_click.STYLE_COMMAND = "#50fa7b"
click.rich_click.STYLE_USAGE = "#bd93f9"
click.rich_click.STYLE_HELPTEXT = "#b3b8c0"

console = Console()


def _load_config(config_path: str | None) -> ConfigLoader:
    return ConfigLoader(config_path) if config_path else get_config()


def _score_table(metrics: ScoreMetrics) -> Table:
    table = Table(title="Speaking score", show_header=True, header_style="bold cyan")
    table.add_column("Dimension")
    table.add_column("Band", justify="right")
    for name, band in metrics.bands.items():
        style = "bold green" if name == "overall" else None
        table.add_row(name.capitalize(), str(band), style=style)
    table.add_section()
    table.add_row("Words", str(metrics.word_count))
    table.add_row("Words per minute", f"{metrics.words_per_minute:.1f}")
    table.add_row("Vocabulary diversity", f"{metrics.vocabulary_diversity:.2f}")
    table.add_row("Sophisticated words", f"{metrics.sophistication_ratio:.2f}")
    table.add_row("Complex sentences", f"{metrics.complexity_ratio:.2f}")
    return table


def _emit(payload: dict) -> None:
    click.echo(jsonlib.dumps(payload, indent=2))


@click.group()
@click.version_option(version=__version__, prog_name="VoiceScore")
@click.option("--config", "config_path", help=" ⚙️  Configuration file path")
@click.option("--debug", is_flag=True, help=" 🐛 Enable detailed debug logging")
@click.pass_context
def cli(ctx, config_path, debug):
    """🎙️ [bold cyan]VoiceScore v1.0.0[/bold cyan] - Speaking practice transcription and scoring

    \b
    [bold yellow]🎯 Quick Start:[/bold yellow]
    \b
      [green]voicescore serve[/green]                       [italic]# Run relay and HTTP API[/italic]
      [green]voicescore score "I went to the park." -d 30[/green]  [italic]# Score a transcript[/italic]
      [green]voicescore transcribe answer.wav[/green]       [italic]# Upload, transcribe and score[/italic]
      [green]voicescore stream answer.wav[/green]           [italic]# Live transcripts via the relay[/italic]
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if debug:
        # Read by setup_logging when the command modules are imported
        os.environ["VOICESCORE_LOG_LEVEL"] = "DEBUG"
        os.environ["VOICESCORE_CONSOLE_LOGS"] = "1"


@cli.command()
@click.option("--host", help=" 🏠 Bind host (default from config)")
@click.option("--port", type=int, help=" 🔌 WebSocket port (default from config)")
@click.option("--http-port", type=int, help=" 🌐 HTTP port (default from config)")
@click.pass_context
def serve(ctx, host, port, http_port):
    """Run the streaming relay and the HTTP transcription endpoints."""
    from .transcription.server import RelayServer

    config = _load_config(ctx.obj["config_path"])
    server = RelayServer(config=config)

    console.print(
        Panel.fit(
            f"[bold]ws://{host or server.host}:{port or server.port}[/bold]\n"
            f"[bold]http://{host or server.host}:{http_port or server.http_port}/api[/bold]\n"
            f"API key configured: {'[green]yes[/green]' if config.api_key_configured else '[red]no[/red]'}",
            title="VoiceScore relay",
            border_style="cyan",
        )
    )

    try:
        asyncio.run(server.start_server(host, port, http_port))
    except KeyboardInterrupt:
        console.print("\n[yellow]Server stopped[/yellow]")
    except OSError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(1)


@cli.command(name="score")
@click.argument("text")
@click.option("--duration", "-d", type=float, default=60.0, show_default=True, help=" ⏱️  Speaking time in seconds")
@click.option("--json", "as_json", is_flag=True, help=" 📄 Output JSON format")
def score_command(text, duration, as_json):
    """Score TEXT as if it was spoken over DURATION seconds."""
    if duration < 0:
        raise click.BadParameter("duration must not be negative", param_hint="--duration")
    metrics = score(text, duration)
    if as_json:
        _emit(metrics.to_dict())
        return
    console.print(_score_table(metrics))


@cli.command()
@click.argument("audio_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--duration", "-d", type=int, help=" ⏱️  Speaking time in seconds (WAV length if omitted)")
@click.option("--json", "as_json", is_flag=True, help=" 📄 Output JSON format")
@click.pass_context
def transcribe(ctx, audio_file, duration, as_json):
    """Upload AUDIO_FILE, transcribe it and score the transcript."""
    from .audio import wav_duration
    from .transcription.client import TranscriptionClient
    from .transcription.exceptions import TranscriptionError

    config = _load_config(ctx.obj["config_path"])
    if duration is None:
        if audio_file.suffix.lower() == ".wav":
            duration = round(wav_duration(audio_file))
        else:
            duration = config.default_duration

    async def run():
        async with TranscriptionClient.from_config(config) as client:
            return await client.transcribe_and_score(audio_file.read_bytes(), duration)

    try:
        if as_json:
            result = asyncio.run(run())
        else:
            with console.status("[cyan]Transcribing...[/cyan]"):
                result = asyncio.run(run())
    except TranscriptionError as e:
        if as_json:
            _emit({"success": False, "error": "Failed to transcribe audio", "details": str(e)})
        else:
            console.print(f"[red]Failed to transcribe audio: {e}[/red]")
        sys.exit(1)

    if as_json:
        _emit(result.to_dict())
        return
    console.print(Panel(result.transcript, title="Transcript", border_style="green"))
    console.print(_score_table(result.score))


@cli.command()
@click.argument("wav_file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--url", help=" 🔗 Relay URL (default ws://<host>:<websocket_port>)")
@click.option("--binary", is_flag=True, help=" 📦 Send binary frames instead of JSON audio_data")
@click.option("--realtime/--no-realtime", default=True, help=" ⏱️  Pace frames at the recording's rate")
@click.option("--json", "as_json", is_flag=True, help=" 📄 Output JSON format")
@click.pass_context
def stream(ctx, wav_file, url, binary, realtime, as_json):
    """Stream WAV_FILE through a running relay and print live transcripts."""
    from .audio import iter_frames, load_wav
    from .transcription.client import RelayClient
    from .transcription.exceptions import StreamingError

    config = _load_config(ctx.obj["config_path"])
    url = url or f"ws://{config.host}:{config.websocket_port}"

    samples, rate = load_wav(wav_file)
    if rate != config.sample_rate:
        console.print(
            f"[yellow]Warning: {wav_file.name} is {rate} Hz, relay expects {config.sample_rate} Hz[/yellow]"
        )

    def on_transcript(text: str) -> None:
        if not as_json:
            console.print(f"[green]›[/green] {text}")

    async def run() -> list[str]:
        async with RelayClient(url, on_transcript=on_transcript, binary_frames=binary) as client:
            await client.start_streaming()
            for frame in iter_frames(samples):
                await client.send_frame(frame)
                if realtime:
                    await asyncio.sleep(len(frame) / 2 / rate)
            return await client.stop_streaming()

    try:
        transcripts = asyncio.run(run())
    except StreamingError as e:
        if as_json:
            _emit({"success": False, "error": str(e)})
        else:
            console.print(f"[red]Streaming failed: {e}[/red]")
        sys.exit(1)

    if as_json:
        _emit({"success": True, "transcripts": transcripts})
    elif not transcripts:
        console.print("[yellow]No transcripts received[/yellow]")


def main():
    """Console script entry point."""
    cli(obj={})


if __name__ == "__main__":
    main()
