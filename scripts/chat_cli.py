#!/usr/bin/env python3
"""Interactive chat CLI for the tool confirmation chat agent."""

import json
import sys
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Confirm, Prompt

from app.confirmation.approval import Approval


class ChatCLI:
    """Interactive chat interface that asks before running confirmation-gated tools."""

    def __init__(self, base_url: str = "http://localhost:8000"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.messages: list[dict[str, Any]] = []
        self.console = Console()
        self.client = httpx.Client(timeout=60.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]🤖 Chat Agent - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with the agent.\n"
                "Commands: /help, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.base_url}.[/red]")
            return

        self.console.print("[green]✅ Connected to chat agent[/green]\n")

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    self.messages = []
                    self.console.print("[yellow]🔄 Conversation cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                self.messages.append(self._new_message("user", user_input))

                # Keep resubmitting while the agent waits on decisions
                while self._send_conversation() and self._ask_for_decisions():
                    pass

        except KeyboardInterrupt:
            pass
        finally:
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    @staticmethod
    def _new_message(role: str, content: str, message_id: str | None = None) -> dict[str, Any]:
        return {
            "id": message_id or uuid4().hex,
            "role": role,
            "content": content,
            "createdAt": datetime.now(UTC).isoformat(),
        }

    def _send_conversation(self) -> bool:
        """Post the conversation and render the streamed reply."""
        text_chunks: list[str] = []
        invocations: dict[str, dict[str, Any]] = {}
        message_id: str | None = None

        try:
            with self.client.stream("POST", f"{self.base_url}/chat", json={"messages": self.messages}) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
                    return False

                for line in response.iter_lines():
                    if not line or ":" not in line:
                        continue
                    code, raw = line.split(":", 1)
                    payload = json.loads(raw)

                    if code == "f":
                        message_id = payload.get("messageId")
                    elif code == "0":
                        text_chunks.append(payload)
                    elif code == "9":
                        invocations[payload["toolCallId"]] = {
                            "toolCallId": payload["toolCallId"],
                            "toolName": payload["toolName"],
                            "args": payload["args"],
                            "state": "call",
                        }
                        self.console.print(f"[dim]🔧 {payload['toolName']}({json.dumps(payload['args'])})[/dim]")
                    elif code == "a":
                        self._record_result(payload, invocations)
                    elif code == "3":
                        self.console.print(f"[red]❌ {payload}[/red]")

        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return False

        text = "".join(text_chunks)
        if not text and not invocations:
            return True

        message = self._new_message("assistant", text, message_id)
        parts: list[dict[str, Any]] = [{"type": "text", "text": text}] if text else []
        parts.extend({"type": "tool-invocation", "toolInvocation": inv} for inv in invocations.values())
        message["parts"] = parts
        self.messages.append(message)

        if text:
            self._display_response(text)
        return True

    def _record_result(self, payload: dict[str, Any], invocations: dict[str, dict[str, Any]]) -> None:
        """Apply a tool result to the invocation it belongs to."""
        call_id = payload["toolCallId"]
        invocation = invocations.get(call_id) or self._find_invocation(call_id)
        if invocation is None:
            return

        invocation["state"] = "result"
        invocation["result"] = payload.get("result")
        self.console.print(f"[dim]✔ {payload['toolName']}: {payload.get('result')}[/dim]")

    def _find_invocation(self, call_id: str) -> dict[str, Any] | None:
        for message in reversed(self.messages):
            for part in message.get("parts") or []:
                invocation = part.get("toolInvocation")
                if part.get("type") == "tool-invocation" and invocation and invocation["toolCallId"] == call_id:
                    return invocation
        return None

    def _ask_for_decisions(self) -> bool:
        """Ask about every call waiting on the user. True if any decision was recorded."""
        if not self.messages or self.messages[-1]["role"] != "assistant":
            return False

        decided = False
        for part in self.messages[-1].get("parts") or []:
            invocation = part.get("toolInvocation")
            if part.get("type") != "tool-invocation" or not invocation or invocation["state"] != "call":
                continue

            approved = Confirm.ask(
                f"[bold yellow]Allow {invocation['toolName']}[/bold yellow] with {json.dumps(invocation['args'])}?"
            )
            invocation["state"] = "result"
            invocation["result"] = (Approval.YES if approved else Approval.NO).value
            decided = True

        return decided

    def _display_response(self, text: str) -> None:
        """Display agent response with nice formatting."""
        self.console.print(
            Panel(
                Markdown(text),
                title="[bold green]🤖 Assistant[/bold green]",
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Clear the conversation and start over
• /quit or /exit - Exit the chat

[bold]Example Conversation:[/bold]
1. "What's the weather in Paris?" (asks for confirmation)
2. "What time is it in Tokyo?" (runs automatically)
3. "Remind me to stretch in 10 minutes"
4. "What tasks are scheduled?"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"

    chat = ChatCLI(base_url)
    chat.start()


if __name__ == "__main__":
    main()
