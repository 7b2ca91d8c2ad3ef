#!/usr/bin/env python3
"""Run one logged completion inside a Tunerkit session.

Wraps the ``litellm`` module itself: any module or object with callable
attributes can be wrapped.

    TUNERKIT_API_KEY=tk-... OPENAI_API_KEY=sk-... \
        python examples/basic_session.py --base-url http://localhost:3000
"""

from __future__ import annotations

import argparse
import logging

import litellm

from tunerkit import TunerkitClient


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--base-url", default=None, help="Tunerkit backend origin")
    parser.add_argument("--dataset-id", default="574b8574-d399-43db-8ace-f4333c447c36")
    parser.add_argument("--model", default="gpt-3.5-turbo")
    parser.add_argument("--test", action="store_true", help="open a 'test' session (dev mode)")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    with TunerkitClient(client=litellm, base_url=args.base_url) as tk:
        headers = tk.start_session(
            {"test": "Basic API call"},
            dataset_id=args.dataset_id,
            session_type="test" if args.test else "real",
        )
        response = tk.completion(
            model=args.model,
            messages=[{"role": "user", "content": "Hello, how are you?"}],
        )
        content = response.choices[0].message.content if hasattr(response, "choices") else response
        print("Response:", content)
        tk.end_session(content, headers)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
