"""
reviewsync show / diff / file - Read-only views of the review.
"""

import json

from reviewsync.session import ReviewSession

STATUS_SYMBOLS = {"pending": " ", "resolved": "x"}


def cmd_show(args, session: ReviewSession) -> int:
    """Print the review document."""
    document = session.api.get_document()

    if args.json:
        print(json.dumps(document, indent=2))
        return 0

    print(f"Review: {session.config.repo_root}")
    print("=" * 60)
    print(f"Branch:     {document['branch']}")
    print(f"Ref:        {document['ref']}")
    print(f"Status:     {document['status']}")
    print(f"Round:      {document['round']}")
    print()

    comments = document["comments"]
    if not comments:
        print("No comments")
    for comment in comments:
        line = f"{comment['line']}-{comment['endLine']}" if comment.get("endLine") else str(comment["line"])
        print(f"[{STATUS_SYMBOLS.get(comment['status'], '?')}] {comment['id']}  {comment['file']}:{line}")
        print(f"      {comment['body']}")
        if comment.get("response"):
            print(f"      agent: {comment['response']}")
        for entry in comment["thread"]:
            print(f"      {entry['author']}: {entry['body']}")

    summary = document.get("summary")
    if summary:
        print()
        print("Summary")
        print("-" * 40)
        print(f"  {summary['global']}")
        for path, note in summary["files"].items():
            print(f"  {path}: {note}")
        for item in summary["testPlan"]:
            print(f"  - {item['description']} (expect: {item['expected']})")

    return 0


def cmd_diff(args, session: ReviewSession) -> int:
    """Print a stat view of the diff against the review ref."""
    diff = session.api.get_diff(args.diff_ref)

    if args.json:
        print(json.dumps(diff, indent=2))
        return 0

    if not diff["files"]:
        print(f"No changes against {diff['ref']}")
        return 0

    for f in diff["files"]:
        if f["new"]:
            label = f"{f['to']} (new)"
        elif f["deleted"]:
            label = f"{f['from']} (deleted)"
        elif f["renamed"]:
            label = f"{f['from']} -> {f['to']}"
        else:
            label = f["to"]
        print(f"  +{f['additions']:<5} -{f['deletions']:<5} {label}")
    print(f"{len(diff['files'])} file(s), +{diff['totalAdditions']} -{diff['totalDeletions']} against {diff['ref']}")
    return 0


def cmd_file(args, session: ReviewSession) -> int:
    """Print a file from the working tree (or HEAD if it was deleted)."""
    print(session.api.get_file(args.path), end="")
    return 0
