# -*- coding: utf-8 -*-
from __future__ import annotations

APP_NAME = "Renal Unit Calculator"
APP_VERSION = "1.3.0"
SCHEMA_VERSION = 2
