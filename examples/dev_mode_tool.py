#!/usr/bin/env python3
"""Instrument a known function in dev mode and log it to Helicone too.

With ``dev=True`` every call first asks the Tunerkit simulator; when it
answers ``run_model: false`` the function body never runs.

    TUNERKIT_API_KEY=tk-... HELICONE_API_KEY=sk-helicone-... \
        python examples/dev_mode_tool.py
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os

import litellm

from tunerkit import HeliconeLogger, TunerkitClient


def build_client(base_url: str | None) -> TunerkitClient:
    sink = None
    helicone_key = os.environ.get("HELICONE_API_KEY")
    if helicone_key:
        sink = HeliconeLogger(helicone_key, "https://api.hconeai.com")
    return TunerkitClient(client=litellm, base_url=base_url, logger=sink)


async def run(tk: TunerkitClient, model: str) -> None:
    @tk.tool(dev=True)
    async def generate_text(prompt: str) -> str:
        response = await litellm.acompletion(
            model=model,
            messages=[{"role": "user", "content": prompt}],
        )
        return response.choices[0].message.content or ""

    headers = tk.start_session({"test": "Test"}, dataset_id="574b8574-d399-43db-8ace-f4333c447c36", session_type="test")
    text = await generate_text("Write a haiku about coding.")
    print("Generated haiku:", text)
    tk.end_session({"generatedText": text}, headers)
    await tk.aflush()


def main() -> int:
    parser = argparse.ArgumentParser(description=__doc__.splitlines()[0])
    parser.add_argument("--base-url", default=None)
    parser.add_argument("--model", default="gpt-3.5-turbo")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)
    asyncio.run(run(build_client(args.base_url), args.model))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
