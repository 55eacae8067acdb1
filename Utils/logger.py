import os
import logging
from logging.handlers import TimedRotatingFileHandler
import gzip
import glob
import time
import re
from datetime import datetime
from collections import defaultdict
import click
from flask.cli import with_appcontext
from flask.logging import default_handler


LOG_FORMAT = "%(asctime)s [%(levelname)s] in %(module)s: %(message)s"
ACCESS_FORMAT = "%(asctime)s - %(message)s"


# ==================================================
# LOGGING SETUP
# ==================================================
def setup_logging(app):
    """Configure logging for the Flask app."""
    # Prevent duplicate log handlers when Flask auto-reloads
    if getattr(app, "_logging_configured", False):
        return app.logger
    app._logging_configured = True

    log_dir = app.config["LOG_DIR"]
    to_file = app.config["LOG_TO_FILE"]
    if to_file:
        os.makedirs(log_dir, exist_ok=True)

    formatter = logging.Formatter(LOG_FORMAT)
    access_formatter = logging.Formatter(ACCESS_FORMAT)

    # -------------------------
    # APP LOGGER
    # -------------------------
    app_handlers = [_console(formatter)]
    if to_file:
        app_handlers.append(_rotating(log_dir, "app.log", 14, logging.INFO, formatter))
        app_handlers.append(_rotating(log_dir, "error.log", 30, logging.ERROR, formatter))

    # Module loggers (Controllers.*, Utils.*, Models.*) and app.logger propagate to root
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.INFO)
    _install(root_logger, app_handlers)
    app.logger.removeHandler(default_handler)
    app.logger.setLevel(logging.INFO)

    # -------------------------
    # ACCESS LOGGER
    # -------------------------
    access_handlers = [_console(access_formatter)]
    if to_file:
        access_handlers.append(_rotating(log_dir, "access.log", 7, logging.INFO, access_formatter))
    access_logger = _dedicated("access", access_handlers)

    # -------------------------
    # CHAT LOGGER
    # -------------------------
    chat_handlers = [_console(formatter)]
    if to_file:
        chat_handlers.append(_rotating(log_dir, "chat.log", 30, logging.INFO, formatter))
    _dedicated("chat", chat_handlers)

    # -------------------------
    # LOG HOOKS & TASKS
    # -------------------------
    register_access_log_hook(app, access_logger)
    if to_file:
        cleanup_old_logs(app, log_dir)
    register_log_summary_command(app)

    app.logger.info("Logging initialized successfully.")
    return app.logger


def _console(formatter):
    handler = logging.StreamHandler()
    handler.setFormatter(formatter)
    handler.setLevel(logging.INFO)
    return handler


def _rotating(log_dir, filename, backup_count, level, formatter):
    handler = TimedRotatingFileHandler(
        os.path.join(log_dir, filename), when="midnight", interval=1,
        backupCount=backup_count, encoding="utf-8", delay=True
    )
    handler.suffix = "%Y-%m-%d"
    handler.setFormatter(formatter)
    handler.setLevel(level)
    return handler


def _install(logger, handlers):
    """Swap out handlers from an earlier setup_logging call, keep foreign ones."""
    for handler in list(logger.handlers):
        if getattr(handler, "_wasteless", False):
            logger.removeHandler(handler)
            handler.close()
    for handler in handlers:
        handler._wasteless = True
        logger.addHandler(handler)


def _dedicated(name, handlers):
    logger = logging.getLogger(name)
    logger.setLevel(logging.INFO)
    logger.propagate = False
    _install(logger, handlers)
    return logger


# ==================================================
# ACCESS LOGGING
# ==================================================
def register_access_log_hook(app, access_logger):
    """Logs each incoming request (IP, method, URL) into access.log."""
    from flask import request

    @app.before_request
    def log_request_info():
        access_logger.info(f"{request.remote_addr} {request.method} {request.url}")


# ==================================================
# OLD LOG CLEANUP & COMPRESSION
# ==================================================
def cleanup_old_logs(app, folder, days=7):
    """Compress rotated logs and delete archives older than `days`."""
    now = time.time()
    for log_file in glob.glob(os.path.join(folder, "*.log.*")):
        if log_file.endswith(".gz"):
            continue
        try:
            with open(log_file, "rb") as f_in:
                with gzip.open(f"{log_file}.gz", "wb") as f_out:
                    f_out.writelines(f_in)
            os.remove(log_file)
            app.logger.info(f"Compressed log: {log_file}")
        except OSError as e:
            app.logger.error(f"Failed to compress {log_file}: {e}")

    for gz_file in glob.glob(os.path.join(folder, "*.gz")):
        if os.stat(gz_file).st_mtime < now - days * 86400:
            os.remove(gz_file)
            app.logger.info(f"Deleted old log: {gz_file}")


# ==================================================
# CLI LOG SUMMARY COMMAND
# ==================================================
LOG_PATTERN = re.compile(r"^(\d{4}-\d{2}-\d{2}).*\[(INFO|ERROR|WARNING)\]")


def summarize_log_lines(lines):
    """Count INFO/WARNING/ERROR lines per day."""
    summary = defaultdict(lambda: {"INFO": 0, "ERROR": 0, "WARNING": 0})
    for line in lines:
        match = LOG_PATTERN.match(line)
        if match:
            date_str, level = match.groups()
            summary[date_str][level] += 1
    return summary


def register_log_summary_command(app):
    """Adds 'flask logs:summary' CLI command to view log stats."""

    @click.command("logs:summary")
    @with_appcontext
    @click.option("--days", default=7, help="Days of logs to summarize")
    def summarize_logs(days):
        log_dir = app.config["LOG_DIR"]
        if not os.path.isdir(log_dir):
            click.echo("No log directory found.")
            return

        summary = defaultdict(lambda: {"INFO": 0, "ERROR": 0, "WARNING": 0})
        now = datetime.now()

        for filename in os.listdir(log_dir):
            if not filename.startswith(("app.log", "error.log", "chat.log")):
                continue

            path = os.path.join(log_dir, filename)
            mtime = datetime.fromtimestamp(os.path.getmtime(path))
            if (now - mtime).days > days:
                continue

            opener = gzip.open if filename.endswith(".gz") else open
            try:
                with opener(path, "rt", encoding="utf-8", errors="ignore") as f:
                    for date_str, counts in summarize_log_lines(f).items():
                        for level, count in counts.items():
                            summary[date_str][level] += count
            except OSError as e:
                click.echo(f"Could not read {filename}: {e}")

        if not summary:
            click.echo("No log entries found in the specified time range.")
            return

        click.echo("\nLog Summary\n──────────────────────────────")
        total_info = total_error = total_warn = 0

        for date_str in sorted(summary.keys()):
            counts = summary[date_str]
            total_info += counts["INFO"]
            total_error += counts["ERROR"]
            total_warn += counts["WARNING"]
            click.echo(
                f"{date_str}  INFO: {counts['INFO']:<5}  WARNING: {counts['WARNING']:<5}  ERROR: {counts['ERROR']:<5}"
            )

        click.echo("──────────────────────────────")
        click.echo(
            f"Total INFO: {total_info}   WARNING: {total_warn}   ERROR: {total_error}"
        )

    app.cli.add_command(summarize_logs)
