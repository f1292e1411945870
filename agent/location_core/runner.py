"""
Entry point and auto-restart wrapper.

The host drives tracking over the method channel; as a standalone process
the channel is fed one method name per line on stdin, e.g.

    startBackgroundLocationTracking
    stopBackgroundLocationTracking
    quit
"""

import sys
import time

from .constants import AGENT_VERSION
from .config import log, safe_print, setup_logging, get_config, CONFIG_FILE
from . import http_client
from .background import BackgroundExecution
from .channel import MethodChannel, MethodNotImplemented
from .controller import TrackingController
from .fallback import FallbackLogger
from .location import LocationSource, create_provider
from .mainloop import MainLoop
from .preferences import Preferences
from .reporter import NetworkReporter
from .session_store import SessionStore


def build_controller(config, loop):
    """Wire the pipeline from a config dict."""
    return TrackingController(
        source=LocationSource(create_provider(config)),
        sessions=SessionStore(Preferences()),
        reporter=NetworkReporter(config["serverUrl"], timeout=config["requestTimeoutSec"]),
        fallback=FallbackLogger(),
        background=BackgroundExecution(budget_sec=config.get("backgroundBudgetSec")),
        loop=loop,
        interval_sec=config["reportIntervalSec"],
        accuracy=config["desiredAccuracyMeters"],
    )


def serve_commands(channel, stream):
    """Feed method names from stream into the channel until EOF or quit."""
    for line in stream:
        method = line.strip()
        if not method:
            continue
        if method in ("quit", "exit"):
            return True
        try:
            channel.handle(method)
            safe_print("ok")
        except MethodNotImplemented:
            safe_print("not implemented: " + method)
    return False


def main():
    """Primary agent entry point."""
    setup_logging()
    safe_print("QuickCity Location Tracker v" + AGENT_VERSION)
    safe_print()

    config = get_config()
    log.info("Config: server=%s interval=%ss provider=%s (%s)",
             config["serverUrl"], config["reportIntervalSec"],
             config["locationProvider"], CONFIG_FILE)

    loop = MainLoop()
    controller = build_controller(config, loop)
    channel = MethodChannel(controller)

    loop.start()
    try:
        if config.get("autoStart"):
            channel.handle("startBackgroundLocationTracking")

        safe_print("Service running. Commands: " + ", ".join(channel.methods) + ", quit\n")
        quit_requested = serve_commands(channel, sys.stdin)
        if not quit_requested:
            # stdin closed (service mode): keep running until killed.
            loop.join()
    finally:
        controller.stop()
        loop.quit()
        log.info("Tracker shut down.")


def run_with_auto_restart():
    """
    Wrapper that auto-restarts on crash.
    Crash counter resets if the agent ran for 2+ minutes (not a boot-loop).
    """
    crash_count = 0
    crash_window = 120
    max_rapid_crashes = 10

    while True:
        start_time = time.time()
        try:
            main()
            break
        except KeyboardInterrupt:
            safe_print("\nTracker stopped by user.")
            break
        except SystemExit as e:
            if str(e) in ("0", "None"):
                break
            log.error("Tracker SystemExit: %s", e)
        except Exception as e:
            elapsed = time.time() - start_time
            log.error("Tracker crashed after %.0fs: %s", elapsed, e, exc_info=True)

            if elapsed > crash_window:
                crash_count = 0
            crash_count += 1

            if crash_count >= max_rapid_crashes:
                wait = 120
                log.warning("Many rapid crashes (%d). Waiting %ds...", crash_count, wait)
            else:
                wait = min(10 * crash_count, 60)

            log.info("Restarting in %ds (crash %d)...", wait, crash_count)
            time.sleep(wait)

            http_client.http = http_client.reset_session(http_client.http)
