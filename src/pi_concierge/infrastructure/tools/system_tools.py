"""System-status tools backed by shell commands on the monitored machine.

Each tool splits into independent readings (temperature, memory, ...) that run
concurrently through a ``RemoteRunner``.  A reading that fails does not affect
its siblings: its field is reported as ``"N/A"`` and the failure is listed
under ``error``/``details`` next to whatever did succeed.
"""

from __future__ import annotations

import asyncio
import logging
import re
from typing import Any, Awaitable, Dict, List

from pi_concierge.application.ports import RemoteRunner
from pi_concierge.config.constants import UNAVAILABLE
from pi_concierge.domain import ToolBackendError

logger = logging.getLogger(__name__)

TOP_N_PROCESSES = 5


# ---------------------------------------------------------------------------
# Parsers (pure)
# ---------------------------------------------------------------------------

def parse_vcgencmd_temp(output: str) -> str:
    """``temp=48.3'C`` → ``48.3°C``."""
    m = re.search(r"temp=([-\d.]+)", output)
    if not m:
        raise ValueError(f"Unrecognized vcgencmd output: {output.strip()!r}")
    return f"{float(m.group(1)):.1f}°C"


def parse_thermal_zone(output: str) -> str:
    """Millidegrees from ``/sys/class/thermal/thermal_zone0/temp`` → ``48.3°C``."""
    return f"{int(output.strip()) / 1000:.1f}°C"


def parse_free_memory(output: str) -> str:
    """``free -m`` → ``412MB / 3794MB (10.9%)``."""
    for line in output.splitlines():
        if line.startswith("Mem:"):
            parts = line.split()
            total, used = int(parts[1]), int(parts[2])
            pct = used / total * 100 if total else 0.0
            return f"{used}MB / {total}MB ({pct:.1f}%)"
    raise ValueError("No 'Mem:' line in free output")


def parse_df_usage(output: str) -> str:
    """``df -h /`` → ``4.1G / 29G (15%)``."""
    lines = [ln for ln in output.splitlines() if ln.strip()]
    if len(lines) < 2:
        raise ValueError("Unexpected df output")
    parts = lines[-1].split()
    size, used, pct = parts[1], parts[2], parts[4]
    return f"{used} / {size} ({pct})"


def parse_uptime_pretty(output: str) -> str:
    """``up 3 days, 4 hours`` → ``3 days, 4 hours``."""
    text = output.strip()
    if not text:
        raise ValueError("Empty uptime output")
    return text[3:] if text.startswith("up ") else text


def parse_ip_brief(output: str) -> List[Dict[str, Any]]:
    """``ip -brief address`` → one dict per interface."""
    interfaces = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        interfaces.append({"interface": parts[0], "state": parts[1], "addresses": parts[2:]})
    return interfaces


def parse_proc_net_dev(output: str) -> Dict[str, Dict[str, int]]:
    """``/proc/net/dev`` → ``{iface: {rx_bytes, tx_bytes}}`` (loopback skipped)."""
    traffic: Dict[str, Dict[str, int]] = {}
    for line in output.splitlines():
        if ":" not in line:
            continue
        name, counters = line.split(":", 1)
        name = name.strip()
        fields = counters.split()
        if name == "lo" or len(fields) < 9:
            continue
        traffic[name] = {"rx_bytes": int(fields[0]), "tx_bytes": int(fields[8])}
    return traffic


def parse_ps(output: str) -> List[Dict[str, Any]]:
    """``ps -eo pid,comm,%cpu,%mem --no-headers`` rows → dicts."""
    processes = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 4:
            continue
        processes.append({
            "pid": int(parts[0]),
            "command": " ".join(parts[1:-2]),
            "cpu_percent": float(parts[-2]),
            "memory_percent": float(parts[-1]),
        })
    return processes


# ---------------------------------------------------------------------------
# Readings
# ---------------------------------------------------------------------------

async def read_cpu_temp(runner: RemoteRunner) -> str:
    try:
        return parse_vcgencmd_temp(await runner.run("vcgencmd measure_temp"))
    except (ToolBackendError, ValueError):
        # Not every image ships vcgencmd; the kernel sensor is always there.
        return parse_thermal_zone(await runner.run("cat /sys/class/thermal/thermal_zone0/temp"))


async def read_memory(runner: RemoteRunner) -> str:
    return parse_free_memory(await runner.run("free -m"))


async def read_disk(runner: RemoteRunner) -> str:
    return parse_df_usage(await runner.run("df -h /"))


async def read_uptime(runner: RemoteRunner) -> str:
    return parse_uptime_pretty(await runner.run("uptime -p"))


async def read_boot_time(runner: RemoteRunner) -> str:
    return (await runner.run("uptime -s")).strip()


async def read_interfaces(runner: RemoteRunner) -> List[Dict[str, Any]]:
    return parse_ip_brief(await runner.run("ip -brief address"))


async def read_traffic(runner: RemoteRunner) -> Dict[str, Dict[str, int]]:
    return parse_proc_net_dev(await runner.run("cat /proc/net/dev"))


async def read_top_processes(runner: RemoteRunner, sort_key: str) -> List[Dict[str, Any]]:
    cmd = f"ps -eo pid,comm,%cpu,%mem --sort=-{sort_key} --no-headers | head -n {TOP_N_PROCESSES}"
    return parse_ps(await runner.run(cmd))


async def gather_fields(readings: Dict[str, Awaitable[Any]]) -> Dict[str, Any]:
    """Await *readings* concurrently, each in its own fault domain.

    Failed fields are set to ``UNAVAILABLE``; when any failed the result also
    carries ``error`` (which fields) and ``details`` (why).
    """
    values = await asyncio.gather(*readings.values(), return_exceptions=True)
    result: Dict[str, Any] = {}
    failures: Dict[str, str] = {}
    for field, value in zip(readings, values):
        if isinstance(value, asyncio.CancelledError):
            raise value
        if isinstance(value, Exception):
            logger.warning("Reading %s failed: %s", field, value)
            result[field] = UNAVAILABLE
            failures[field] = str(value) or type(value).__name__
        else:
            result[field] = value
    if failures:
        result["error"] = f"Could not read: {', '.join(failures)}"
        result["details"] = "; ".join(f"{k}: {v}" for k, v in failures.items())
    return result


# ---------------------------------------------------------------------------
# Tools
# ---------------------------------------------------------------------------

async def get_raspberry_pi_status(runner: RemoteRunner) -> Dict[str, Any]:
    return await gather_fields({
        "cpu_temp": read_cpu_temp(runner),
        "memory_usage": read_memory(runner),
        "disk_usage": read_disk(runner),
    })


async def get_system_uptime(runner: RemoteRunner) -> Dict[str, Any]:
    return await gather_fields({
        "uptime": read_uptime(runner),
        "boot_time": read_boot_time(runner),
    })


async def get_network_info(runner: RemoteRunner) -> Dict[str, Any]:
    return await gather_fields({
        "interfaces": read_interfaces(runner),
        "traffic": read_traffic(runner),
    })


async def get_top_processes(runner: RemoteRunner) -> Dict[str, Any]:
    return await gather_fields({
        "top_cpu": read_top_processes(runner, "%cpu"),
        "top_memory": read_top_processes(runner, "%mem"),
    })


COMMAND_TOOLS = {
    "get_raspberry_pi_status": get_raspberry_pi_status,
    "get_system_uptime": get_system_uptime,
    "get_network_info": get_network_info,
    "get_top_processes": get_top_processes,
}
