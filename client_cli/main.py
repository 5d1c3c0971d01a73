from __future__ import annotations

from typing import Dict, Optional
from pathlib import Path
import json
import os
import random
import uuid

import typer
from rich.console import Console
import httpx


app = typer.Typer()
console = Console()
trace_console = Console(stderr=True)

EXAMPLE_PROMPTS = [
    "Tell me everything about Prayagraj",
    "Show me Paris and give me insights",
    "Create a shareable link for Taj Mahal",
    "What's the weather in Tokyo right now?",
    "What are the landmarks near Big Ben?",
]


class TurnPrinter:
    """Prints SSE turn events. Renders replace a message's text, so only the
    unseen suffix is printed."""

    def __init__(self) -> None:
        self.roles: Dict[int, str] = {}
        self.shown: Dict[int, str] = {}
        self.thoughts: Dict[int, str] = {}
        self.answer: str = ""

    def handle(self, payload: dict) -> None:
        ptype = payload.get("type")
        msg_id = payload.get("id")
        if ptype == "message":
            self.roles[msg_id] = payload.get("role", "assistant")
        elif ptype == "thought":
            content = payload.get("content", "")
            seen = self.thoughts.get(msg_id, "")
            delta = content[len(seen):] if content.startswith(seen) else content
            trace_console.print(delta, style="dim italic", end="")
            self.thoughts[msg_id] = content
        elif ptype == "render":
            self._render(msg_id, payload.get("content", ""))
        elif ptype == "state":
            trace_console.print(f"[state] {payload.get('state')}", style="dim")
        elif ptype == "map_query":
            trace_console.print(f"[map] {json.dumps(payload.get('params'))}", style="cyan")

    def _render(self, msg_id: int, content: str) -> None:
        role = self.roles.get(msg_id, "assistant")
        if role == "error":
            trace_console.print(content, style="bold red")
            return
        if content.startswith("Calling function:"):
            trace_console.print(content, style="dim")
            return
        if content == "...":
            return
        seen = self.shown.get(msg_id, "")
        if content.startswith(seen):
            delta = content[len(seen):]
        else:
            console.print()
            delta = content
        console.print(delta, end="")
        self.shown[msg_id] = content
        self.answer = content


@app.command()
def chat(
    prompt_str: Optional[str] = typer.Argument(None, help="A free-form request, e.g. 'Tell me about Rome'."),
    output_file: Optional[Path] = typer.Option(
        None, "--output", "-o", help="Append answers to this Markdown file."
    ),
    interactive: bool = typer.Option(
        False, "--interactive", "-i", help="Enter multi-turn interactive mode after the first response."
    ),
) -> None:
    """Talk to the geo insights assistant."""
    orchestrator_url = os.getenv("ORCHESTRATOR_URL", "http://localhost:3002")
    url = f"{orchestrator_url.rstrip('/')}/chat"
    session_id = str(uuid.uuid4())

    def run_once(one_prompt: str) -> str:
        printer = TurnPrinter()
        with console.status("Thinking..."):
            try:
                with httpx.stream(
                    "POST",
                    url,
                    json={"prompt": one_prompt, "session_id": session_id},
                    headers={"Accept": "text/event-stream", "Content-Type": "application/json"},
                    timeout=120,
                ) as resp:
                    resp.raise_for_status()
                    for raw_line in resp.iter_lines():
                        line = raw_line.strip()
                        if not line or not line.startswith("data:"):
                            continue
                        data = line[len("data:"):].strip()
                        if data == "[DONE]":
                            break
                        try:
                            payload = json.loads(data)
                        except json.JSONDecodeError:
                            continue
                        printer.handle(payload)
            except httpx.HTTPError as e:
                trace_console.print(f"Request failed: {e}", style="bold red")
        console.print()
        return printer.answer

    def save(md: str) -> None:
        if not (output_file and md):
            return
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with output_file.open("a", encoding="utf-8") as f:
                if f.tell() > 0:
                    f.write("\n\n---\n\n")
                f.write(md)
            console.print(f"\nSaved answer to {output_file}", style="green")
        except OSError as e:
            trace_console.print(f"Failed to write file: {e}", style="bold red")

    if not prompt_str and not interactive:
        try:
            prompt_str = typer.prompt(f"Enter your request (e.g., '{random.choice(EXAMPLE_PROMPTS)}')")
        except (EOFError, KeyboardInterrupt):
            raise typer.Exit(code=1)
        if not (prompt_str and prompt_str.strip()):
            console.print("No input provided.", style="bold red")
            raise typer.Exit(code=1)

    if prompt_str:
        save(run_once(prompt_str))

    if interactive:
        while True:
            try:
                user_in = typer.prompt("Ask a follow-up or new request (type 'exit' to quit)")
            except (EOFError, KeyboardInterrupt):
                break
            lower = user_in.strip().lower()
            if not lower:
                continue
            if lower in {"exit", "quit", "q"}:
                break
            save(run_once(user_in.strip()))


@app.command()
def tool(
    name: str = typer.Argument(..., help="Tool name, e.g. geocode_location."),
    args: str = typer.Option("{}", "--args", "-a", help="Tool arguments as a JSON object."),
) -> None:
    """Invoke one tool on the geo tools service and print its JSON result."""
    tools_url = os.getenv("GEO_TOOLS_URL", "http://localhost:3001").rstrip("/")
    try:
        arguments = json.loads(args)
    except json.JSONDecodeError as e:
        console.print(f"--args is not valid JSON: {e}", style="bold red")
        raise typer.Exit(code=2)

    headers = {"X-API-Key": os.getenv("GEO_TOOLS_API_KEY", ""), "Accept": "application/json"}
    try:
        resp = httpx.post(f"{tools_url}/tools/{name}", json=arguments, headers=headers, timeout=60)
        resp.raise_for_status()
    except httpx.HTTPError as e:
        trace_console.print(f"Request failed: {e}", style="bold red")
        raise typer.Exit(code=1)

    result = resp.json()
    for item in result.get("content", []):
        console.print_json(item.get("text", "null"))
    if result.get("isError"):
        raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
