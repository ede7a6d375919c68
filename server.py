"""Command-line entry point for the conversation chat server."""

from __future__ import annotations

import argparse
import dataclasses
import logging
import os
import sys
from typing import Optional

from dotenv import load_dotenv
import uvicorn

from conversation_module import ChatConfig, load_config_from_env
from conversation_module.api import create_app
from conversation_module.errors import ConfigurationError, StoreError
from conversation_module.service import ChatService
from conversation_module.utils import setup_logging

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the conversation chat backend.")
    parser.add_argument("--host", default="0.0.0.0", help="Host interface to bind.")
    parser.add_argument("--port", type=int, default=5000, help="Port to bind.")
    parser.add_argument("--log_dir", default="./logs", help="Directory for application logs.")
    parser.add_argument("--store_dir", help="Directory holding conversation documents (overrides CHAT_STORE_DIR).")
    parser.add_argument("--llm_endpoint", help="Chat-completions endpoint (overrides OPENROUTER_ENDPOINT).")
    parser.add_argument("--llm_model", help="Model name for completions (overrides OPENROUTER_MODEL).")
    parser.add_argument("--request_timeout", type=int, help="Timeout for LLM calls (seconds).")
    parser.add_argument("--context_window_size", type=int, help="History messages sent with each turn.")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ChatConfig:
    """Merge environment configuration with command-line overrides."""
    load_dotenv()
    env = dict(os.environ)
    if args.store_dir:
        env["CHAT_STORE_DIR"] = args.store_dir
    config = load_config_from_env(env)

    overrides = {
        "endpoint": args.llm_endpoint,
        "model": args.llm_model,
        "request_timeout": args.request_timeout,
    }
    overrides = {key: value for key, value in overrides.items() if value is not None}
    if overrides:
        config.llm = dataclasses.replace(config.llm, **overrides)
    if args.context_window_size is not None:
        if args.context_window_size < 1:
            raise ConfigurationError("--context_window_size must be at least 1")
        config.context_window_size = args.context_window_size
    return config


def main(argv: Optional[list[str]] = None) -> None:
    args = parse_args(argv)
    setup_logging(args.log_dir, logging.INFO)
    try:
        config = build_config(args)
        service = ChatService(config)
    except (ConfigurationError, StoreError) as exc:
        logger.critical("Startup configuration error: %s", exc)
        sys.exit(1)

    app = create_app(config, service=service)
    logger.info("Starting conversation chat server on %s:%d", args.host, args.port)
    uvicorn.run(app, host=args.host, port=args.port)


if __name__ == "__main__":
    main()
