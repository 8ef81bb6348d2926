"""filelabels CLI entry point"""

import argparse
import sys

import uvicorn

from filelabels.logging_config import setup_logging


def init_project():
    """Initialize .filelabels directory, configuration and database"""
    from filelabels.storage.migrations import PROJECT_DIR, initialize_database

    initialize_database()
    print(f"Initialized filelabels in {PROJECT_DIR.absolute()}")


def serve(host: str = "127.0.0.1", port: int = 8080, reload: bool = False, log_level: str = "info"):
    """Start the filelabels server"""
    uvicorn.run(
        "filelabels.main:app",
        host=host,
        port=port,
        reload=reload,
        log_level=log_level.lower()
    )


def set_max_labels(value: str) -> int:
    """Change the per-user label quota"""
    from filelabels.exceptions import LabelValidationError
    from filelabels.settings import label_settings

    try:
        new_value = label_settings.set_max_labels_per_user(value)
    except LabelValidationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    print(f"Maximum labels per user set to {new_value}")
    return 0


def purge_user(user_id: str, batch_size=None, pause=None) -> int:
    """Remove every label owned by a user, as if the user had been deleted"""
    from filelabels.settings import label_settings
    from filelabels.storage.cleanup import UserDeletedListener
    from filelabels.storage.events import EventDispatcher, UserDeletedEvent
    from filelabels.storage.label_store import label_store
    from filelabels.storage.migrations import initialize_database

    initialize_database()

    settings = _PurgeSettings(label_settings, batch_size, pause)
    dispatcher = EventDispatcher()
    dispatcher.add_listener(UserDeletedEvent, UserDeletedListener(label_store, settings))
    dispatcher.dispatch(UserDeletedEvent(user_id=user_id))

    print(f"Purged labels for user {user_id}")
    return 0


def purge_file(file_id: int) -> int:
    """Remove every user's labels from a file, as if the file had been deleted"""
    from filelabels.storage.cleanup import register_cleanup_listeners
    from filelabels.storage.events import EventDispatcher, FileDeletedEvent
    from filelabels.storage.migrations import initialize_database

    initialize_database()

    dispatcher = EventDispatcher()
    register_cleanup_listeners(dispatcher)
    dispatcher.dispatch(FileDeletedEvent(file_id=file_id))

    print(f"Purged labels for file {file_id}")
    return 0


class _PurgeSettings:
    """Deletion settings with command-line overrides"""

    def __init__(self, base, batch_size=None, pause=None):
        self.user_deletion_batch_size = batch_size if batch_size is not None else base.user_deletion_batch_size
        self.user_deletion_pause = pause if pause is not None else base.user_deletion_pause


def main(argv=None):
    """Main CLI entry point"""
    parser = argparse.ArgumentParser(description="filelabels - per-user labels for files")
    parser.add_argument("--log-level", default="INFO", help="Log level (DEBUG, INFO, WARNING, ERROR)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON lines")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # Init command
    subparsers.add_parser("init", help="Initialize filelabels in current directory")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start filelabels server")
    serve_parser.add_argument("--host", default="127.0.0.1", help="Host to bind to")
    serve_parser.add_argument("--port", type=int, default=8080, help="Port to bind to")
    serve_parser.add_argument("--reload", action="store_true", help="Enable auto-reload")
    # Also accepted after the subcommand; SUPPRESS keeps the global value when omitted
    serve_parser.add_argument("--log-level", default=argparse.SUPPRESS, help="Log level")
    serve_parser.add_argument("--json-logs", action="store_true", default=argparse.SUPPRESS, help="Emit logs as JSON lines")

    # Quota command
    quota_parser = subparsers.add_parser("set-max-labels", help="Set the maximum number of labels per user")
    quota_parser.add_argument("value", help="New maximum (100 - 1000000)")

    # Cleanup commands
    purge_user_parser = subparsers.add_parser("purge-user", help="Delete all labels owned by a user")
    purge_user_parser.add_argument("user_id", help="User whose labels are removed")
    purge_user_parser.add_argument("--batch-size", type=int, default=None, help="Rows deleted per batch")
    purge_user_parser.add_argument("--pause", type=float, default=None, help="Seconds to sleep between batches")

    purge_file_parser = subparsers.add_parser("purge-file", help="Delete all labels attached to a file")
    purge_file_parser.add_argument("file_id", type=int, help="File whose labels are removed")

    args = parser.parse_args(argv)
    setup_logging(args.log_level, json_format=args.json_logs)

    if args.command == "init":
        init_project()
    elif args.command == "serve":
        serve(args.host, args.port, args.reload, args.log_level)
    elif args.command == "set-max-labels":
        return set_max_labels(args.value)
    elif args.command == "purge-user":
        return purge_user(args.user_id, args.batch_size, args.pause)
    elif args.command == "purge-file":
        return purge_file(args.file_id)
    else:
        parser.print_help()
    return 0


if __name__ == "__main__":
    sys.exit(main())
