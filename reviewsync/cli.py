#!/usr/bin/env python3
"""reviewsync CLI entrypoint."""

import sys
import logging
import argparse
from pathlib import Path

from reviewsync.lib.errors import (
    FileNotFoundInRepoError,
    GitCommandError,
    NotFoundError,
    PathTraversalError,
    RepositoryNotFoundError,
    ReviewSyncError,
    ValidationError,
)
from reviewsync.session import ReviewSession
from reviewsync.commands import show as cmd_show_module
from reviewsync.commands import comment as cmd_comment_module
from reviewsync.commands import watch as cmd_watch_module

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INVALID = 2
EXIT_TRAVERSAL = 3


def exit_code_for(error: ReviewSyncError) -> int:
    if isinstance(error, PathTraversalError):
        return EXIT_TRAVERSAL
    if isinstance(error, (ValidationError, RepositoryNotFoundError)):
        return EXIT_INVALID
    return EXIT_ERROR


def run_command(args, func) -> int:
    """Open a session for the current repository and run one command in it."""
    try:
        with ReviewSession.open(cwd=args.repo, ref=args.ref, watch=False) as session:
            return func(args, session)
    except NotFoundError as e:
        print(f"ERROR: Comment '{e.comment_id}' not found")
        return exit_code_for(e)
    except FileNotFoundInRepoError as e:
        print(f"ERROR: File not found: {e.path}")
        return exit_code_for(e)
    except GitCommandError as e:
        print(f"ERROR: git failed: {e}")
        return exit_code_for(e)
    except ReviewSyncError as e:
        print(f"ERROR: {e}")
        return exit_code_for(e)


def cmd_show(args):
    return run_command(args, cmd_show_module.cmd_show)


def cmd_diff(args):
    return run_command(args, cmd_show_module.cmd_diff)


def cmd_file(args):
    return run_command(args, cmd_show_module.cmd_file)


def cmd_comment(args):
    return run_command(args, cmd_comment_module.cmd_comment)


def cmd_reply(args):
    return run_command(args, cmd_comment_module.cmd_reply)


def cmd_resolve(args):
    return run_command(args, cmd_comment_module.cmd_resolve)


def cmd_reopen(args):
    return run_command(args, cmd_comment_module.cmd_reopen)


def cmd_delete(args):
    return run_command(args, cmd_comment_module.cmd_delete)


def cmd_summary(args):
    return run_command(args, cmd_comment_module.cmd_summary)


def cmd_watch(args):
    return run_command(args, cmd_watch_module.cmd_watch)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='reviewsync', description='Review state for agent-authored changes')
    parser.add_argument('--repo', '-C', type=Path, help='Repository path (defaults to the current directory)')
    parser.add_argument('--ref', '-r', help='Diff base (defaults to the merge-base with the default branch)')
    parser.add_argument('--verbose', '-v', action='store_true', help='Log debug output to stderr')
    subparsers = parser.add_subparsers(dest='command', required=True)

    # reviewsync show
    p_show = subparsers.add_parser('show', help='Show the review document')
    p_show.add_argument('--json', action='store_true', help='Print raw JSON')
    p_show.set_defaults(func=cmd_show)

    # reviewsync diff
    p_diff = subparsers.add_parser('diff', help='Show files changed against the review ref')
    p_diff.add_argument('--ref', dest='diff_ref', help='Diff against this ref instead of the review ref')
    p_diff.add_argument('--json', action='store_true', help='Print the parsed diff as JSON')
    p_diff.set_defaults(func=cmd_diff)

    # reviewsync file
    p_file = subparsers.add_parser('file', help='Print a file from the repository')
    p_file.add_argument('path', help='Repository-relative path')
    p_file.set_defaults(func=cmd_file)

    # reviewsync comment
    p_comment = subparsers.add_parser('comment', help='Add a line comment')
    p_comment.add_argument('file', help='Repository-relative path')
    p_comment.add_argument('line', type=int, help='Line number (1-based)')
    p_comment.add_argument('body', help='Comment text')
    p_comment.add_argument('--end-line', '-e', type=int, help='Last line of a multi-line range')
    p_comment.add_argument('--side', '-s', choices=['old', 'new'], default='new', help='Diff side (default: new)')
    p_comment.set_defaults(func=cmd_comment)

    # reviewsync reply
    p_reply = subparsers.add_parser('reply', help='Reply to a comment (reopens it)')
    p_reply.add_argument('id', help='Comment ID')
    p_reply.add_argument('body', help='Reply text')
    p_reply.set_defaults(func=cmd_reply)

    # reviewsync resolve
    p_resolve = subparsers.add_parser('resolve', help='Mark a comment resolved')
    p_resolve.add_argument('id', help='Comment ID')
    p_resolve.set_defaults(func=cmd_resolve)

    # reviewsync reopen
    p_reopen = subparsers.add_parser('reopen', help='Mark a comment pending again')
    p_reopen.add_argument('id', help='Comment ID')
    p_reopen.set_defaults(func=cmd_reopen)

    # reviewsync delete
    p_delete = subparsers.add_parser('delete', help='Delete a comment')
    p_delete.add_argument('id', help='Comment ID')
    p_delete.set_defaults(func=cmd_delete)

    # reviewsync summary
    p_summary = subparsers.add_parser('summary', help='Replace the review summary from a JSON file')
    p_summary.add_argument('file', help='Path to summary JSON ({"global": ..., "files": ..., "testPlan": ...})')
    p_summary.set_defaults(func=cmd_summary)

    # reviewsync watch
    p_watch = subparsers.add_parser('watch', help='Stream review events to stdout')
    p_watch.set_defaults(func=cmd_watch)

    return parser


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )
    return args.func(args)


if __name__ == '__main__':
    sys.exit(main())
