"""Replay a file of utterances through the assistant and print each reply."""

import argparse
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.assistant.handler import TaskAssistant
from src.pipeline_config import AssistantConfig


def replay_utterances(path: str, user_id: str = "replay", use_llm: bool = False) -> None:
    """Feed every non-empty line of ``path`` to one assistant as ``user_id``.

    Lines starting with ``#`` are skipped. Nothing is persisted.
    """
    file_path = Path(path)
    if not file_path.exists():
        print(f"File {path} not found.")
        return

    assistant = TaskAssistant(config=AssistantConfig(enable_llm=use_llm))
    lines = [
        line.strip()
        for line in file_path.read_text(encoding="utf-8").splitlines()
        if line.strip() and not line.lstrip().startswith("#")
    ]

    completed = 0
    for i, line in enumerate(lines):
        reply = assistant.handle_utterance(user_id, line)
        print(f"[{i + 1}] > {line}")
        print(f"    ({reply.source}) {reply.text}")
        if reply.extraction is not None:
            print(
                f"    level {reply.extraction.strategy_level} {reply.extraction.strategy_name} "
                f"confidence {reply.extraction.confidence:.2f}"
            )
        if reply.is_complete:
            completed += 1

    print(f"\nDone! {len(lines)} utterances, {completed} tasks completed.")
    print(f"Fallback usage: {assistant.chain.stats()}")


if __name__ == "__main__":
    parser = argparse.ArgumentParser()
    parser.add_argument("file")
    parser.add_argument("--user", default="replay")
    parser.add_argument("--llm", action="store_true", help="try the LLM stage before the fallback chain")
    args = parser.parse_args()
    replay_utterances(args.file, args.user, args.llm)
