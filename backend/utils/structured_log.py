"""
Compact JSON log lines, so request logs can be grepped and parsed.
"""
import json


def structured_log_line(payload: dict) -> str:
    return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)
