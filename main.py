"""reflink - reference annotations for generated answers

Simple CLI for annotating a block of text.
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path

from reflink.models.events import AnnotationStatus, SSEEvent
from reflink.models.schemas import FinishedAnswer
from reflink.services.annotation_coordinator import AnnotationAttachmentCoordinator


def print_event(event: SSEEvent, as_json: bool) -> None:
    data = event.data
    if as_json:
        if data.get("status") != "loading":
            print(json.dumps(data, indent=2))
        return

    status = data.get("status")
    if status == "loading":
        print("[~] Looking up references...")
    elif status == "resolved":
        annotations = data.get("data", {}).get("annotations", [])
        print(f"\n[*] {len(annotations)} references:")
        for i, item in enumerate(annotations, 1):
            confidence = item.get("confidence")
            score = f" ({confidence:.2f})" if isinstance(confidence, (int, float)) else ""
            print(f"  {i}. {item.get('title')}{score}")
            print(f"     {item.get('url')}")
    elif status == "empty":
        print("\n[-] No references found")
    elif status == "failed":
        print(f"\n[!] Error: {data.get('error', 'Unknown error')}")


async def run_annotate(text: str, limit: int | None = None, as_json: bool = False) -> int:
    coordinator = AnnotationAttachmentCoordinator(top_n=limit)
    answer = FinishedAnswer(id="cli", content=text)
    outcome = await coordinator.on_answer_finished(
        answer, emit=lambda event: print_event(event, as_json)
    )
    return 1 if outcome.status is AnnotationStatus.FAILED else 0


def main():
    parser = argparse.ArgumentParser(description="reflink reference annotator")
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("--text", "-t", help="Text to annotate")
    source.add_argument("--file", "-f", type=Path, help="File containing the text to annotate")
    parser.add_argument("--limit", "-n", type=int, help="Maximum references (default: from config)")
    parser.add_argument("--json", action="store_true", help="Print the annotation envelope as JSON")

    args = parser.parse_args()
    text = args.text if args.text is not None else args.file.read_text(encoding="utf-8")

    sys.exit(asyncio.run(run_annotate(text, args.limit, args.json)))


if __name__ == "__main__":
    main()
