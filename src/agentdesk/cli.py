"""Simple CLI for chatting with an agent through a running orchestrator."""

from __future__ import annotations

import argparse
from uuid import UUID

import httpx


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(str(exc)) from exc


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Interactive shell for chatting with a running orchestrator instance.",
    )
    parser.add_argument(
        "--host",
        default="http://localhost:8000",
        help="Base URL for the orchestrator service (default: %(default)s)",
    )
    parser.add_argument(
        "--agent-id",
        type=_parse_uuid,
        required=True,
        help="Agent UUID configured in the database.",
    )
    parser.add_argument(
        "--visitor-id",
        default="cli-visitor",
        help="Identifier for the simulated visitor (default: %(default)s).",
    )
    parser.add_argument(
        "--tenant-id",
        type=_parse_uuid,
        default=None,
        help="Tenant UUID sent as X-Tenant-ID for the ownership check.",
    )
    parser.add_argument(
        "--conversation-id",
        type=_parse_uuid,
        default=None,
        help="Conversation UUID to continue (default: the visitor's latest).",
    )
    parser.add_argument(
        "--public",
        action="store_true",
        help="Use the public widget endpoint instead of the operator one.",
    )
    parser.add_argument(
        "--origin",
        default=None,
        help="Origin header to present on the public endpoint.",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=90.0,
        help="HTTP timeout in seconds (default: %(default)s).",
    )
    return parser


def chat_path(agent_id: UUID, *, public: bool) -> str:
    if public:
        return f"/v1/public/agents/{agent_id}/chat"
    return f"/v1/agents/{agent_id}/chat"


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    headers: dict[str, str] = {}
    if args.tenant_id is not None:
        headers["X-Tenant-ID"] = str(args.tenant_id)
    if args.origin:
        headers["Origin"] = args.origin

    conversation_id: str | None = str(args.conversation_id) if args.conversation_id else None
    path = chat_path(args.agent_id, public=args.public)
    print("AgentDesk Chat CLI")
    print("Press Ctrl-D to exit.\n")

    with httpx.Client(base_url=args.host, timeout=args.timeout, headers=headers) as client:
        while True:
            try:
                message = input("You> ").strip()
            except (EOFError, KeyboardInterrupt):
                print()
                break

            if not message:
                continue

            payload: dict[str, str] = {"message": message, "visitorId": args.visitor_id}
            if conversation_id:
                payload["conversationId"] = conversation_id

            response = client.post(path, json=payload)
            if response.status_code != 200:
                try:
                    title = response.json().get("title", response.text)
                except ValueError:
                    title = response.text
                print(f"! request failed ({response.status_code}): {title}")
                continue

            data = response.json().get("data", {})
            conversation_id = data.get("conversationId") or conversation_id
            print(f"Agent> {data.get('response', '').strip()}")
            print(f"       ({data.get('tokensUsed', 0)} tokens)\n")

    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entrypoint
    raise SystemExit(main())
