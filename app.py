# -*- coding: utf-8 -*-
"""
Web entry point.

    python app.py

Environment:
  PORT / GRADIO_SERVER_PORT   preferred port (default 7860; next free port is used)
  RENALCALC_RULES             optional YAML file overriding formula constants
  RENALCALC_LOG_LEVEL         DEBUG, INFO (default), WARNING, ...
"""
from __future__ import annotations

import logging
import os
import socket

from renalcalc.rules import load_rules
from renalcalc.ui import CSS, build_demo

logger = logging.getLogger("renalcalc")


def _find_free_port(preferred: int) -> int:
    for port in range(preferred, preferred + 50):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
            try:
                s.bind(("0.0.0.0", port))
                return port
            except OSError:
                continue
    return preferred


def main():
    logging.basicConfig(
        level=os.environ.get("RENALCALC_LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
    )
    demo = build_demo(load_rules())
    port = int(os.environ.get("PORT", os.environ.get("GRADIO_SERVER_PORT", "7860")))
    port = _find_free_port(port)
    logger.info("Starting on port %d", port)

    launch_kwargs = dict(server_name="0.0.0.0", server_port=port, share=False)
    try:
        demo.launch(**launch_kwargs, css=CSS)
    except TypeError:
        # Older Gradio versions do not accept css in launch()
        demo.launch(**launch_kwargs)


if __name__ == "__main__":
    main()
