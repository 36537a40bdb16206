"""Command-line interface over the repository."""

from __future__ import annotations

import argparse
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import httpx

from .config import AppConfig, load_config, map_path
from .constants import APP_NAME, CLI_HELP_HINT
from .errors import SessionRequiredError, SynergyError
from .logging_utils import setup_logging
from .models import User
from .queries import (
    list_threads,
    notifications_for,
    project_members,
    projects_for_user,
    task_board,
    unread_count,
)
from .repository import Repository
from .session import SessionStrategy, build_session_strategy
from .storage import FileStorage


@dataclass
class Context:
    repo: Repository
    session: SessionStrategy

    def require_user(self) -> User:
        user = self.repo.current_user()
        if user is None:
            raise SessionRequiredError("Not signed in. Run 'synergy login' first.")
        return user


# ---------------------------------------------------------------------------
# Session commands
# ---------------------------------------------------------------------------


def _cmd_signup(ctx: Context, args: argparse.Namespace) -> None:
    token = ctx.session.sign_up(args.email, args.name or "", args.password)
    user = ctx.repo.get_user(token.user_id)
    print(f"Signed up and logged in as {user.name} <{user.email}>.")


def _cmd_login(ctx: Context, args: argparse.Namespace) -> None:
    token = ctx.session.log_in(args.email, args.password)
    user = ctx.repo.get_user(token.user_id)
    print(f"Logged in as {user.name} <{user.email}>.")
    if token.expires_at is not None:
        print(f"Token expires at {token.expires_at.isoformat()}.")


def _cmd_logout(ctx: Context, args: argparse.Namespace) -> None:
    ctx.session.log_out()
    print("Signed out.")


def _cmd_whoami(ctx: Context, args: argparse.Namespace) -> None:
    user = ctx.require_user()
    unread = unread_count(ctx.repo.snapshot, user.id)
    print(f"{user.name} <{user.email}> ({user.id}), {unread} unread notification(s)")


# ---------------------------------------------------------------------------
# Projects
# ---------------------------------------------------------------------------


def _cmd_projects(ctx: Context, args: argparse.Namespace) -> None:
    user = ctx.require_user()
    projects = projects_for_user(ctx.repo.snapshot, user.id)
    if not projects:
        print("No projects yet.")
        return
    for p in projects:
        summary = ctx.repo.progress(p.id)
        print(
            f"{p.id}  {p.name}  {summary.completion_percent}% done "
            f"({summary.total} task(s), {len(p.members)} member(s))"
        )


def _cmd_project_create(ctx: Context, args: argparse.Namespace) -> None:
    user = ctx.require_user()
    project = ctx.repo.create_project(user.id, args.name)
    print(f"Created project {project.id}: {project.name}")


def _cmd_member_add(ctx: Context, args: argparse.Namespace) -> None:
    project = ctx.repo.add_member(args.project_id, args.member)
    print(f"{project.name} now has {len(project.members)} member(s).")


def _cmd_members(ctx: Context, args: argparse.Namespace) -> None:
    project = ctx.repo.get_project(args.project_id)
    for u in project_members(ctx.repo.snapshot, project):
        print(f"{u.id}  {u.name} <{u.email}>")


def _cmd_progress(ctx: Context, args: argparse.Namespace) -> None:
    summary = ctx.repo.progress(args.project_id)
    for label, count in summary.breakdown():
        print(f"{label}: {count}")
    print(f"Completion: {summary.completion_percent}%")


# ---------------------------------------------------------------------------
# Tasks
# ---------------------------------------------------------------------------


def _cmd_task_create(ctx: Context, args: argparse.Namespace) -> None:
    task = ctx.repo.create_task(
        args.project_id,
        args.title,
        description=args.description,
        assignee_id=args.assignee,
        due_date=args.due,
    )
    print(f"Created task {task.id}: {task.title}")


def _cmd_task_status(ctx: Context, args: argparse.Namespace) -> None:
    task = ctx.repo.set_task_status(args.task_id, args.status)
    print(f'Task "{task.title}" marked {task.status.label}.')


def _cmd_task_delete(ctx: Context, args: argparse.Namespace) -> None:
    ctx.repo.delete_task(args.task_id)
    print(f"Deleted task {args.task_id}.")


def _cmd_board(ctx: Context, args: argparse.Namespace) -> None:
    ctx.repo.get_project(args.project_id)
    board = task_board(ctx.repo.snapshot, args.project_id, ctx.repo.now())
    for status, views in board.items():
        print(f"== {status.label} ({len(views)})")
        for v in views:
            flags = []
            if v.due_soon:
                flags.append("due soon")
            if v.overdue:
                flags.append("overdue")
            assignee = v.assignee.name if v.assignee else "unassigned"
            due = v.task.due_date.isoformat() if v.task.due_date else "-"
            suffix = f"  [{', '.join(flags)}]" if flags else ""
            print(f"  {v.task.id}  {v.task.title}  ({assignee}, due {due}){suffix}")


# ---------------------------------------------------------------------------
# Messages
# ---------------------------------------------------------------------------


def _cmd_post(ctx: Context, args: argparse.Namespace) -> None:
    user = ctx.require_user()
    message = ctx.repo.post_message(args.project_id, user.id, args.content, args.reply_to)
    print(f"Posted {message.id}.")


def _cmd_threads(ctx: Context, args: argparse.Namespace) -> None:
    ctx.repo.get_project(args.project_id)
    snapshot = ctx.repo.snapshot
    names = {u.id: u.name for u in snapshot.users}
    threads = list_threads(snapshot, args.project_id)
    if not threads:
        print("No threads yet.")
        return
    for t in threads:
        print(f"{t.root.id}  {names.get(t.root.author_id, '?')}: {t.root.content}")
        for r in t.replies:
            print(f"    {r.id}  {names.get(r.author_id, '?')}: {r.content}")


# ---------------------------------------------------------------------------
# Notifications, profile and settings
# ---------------------------------------------------------------------------


def _cmd_notifications(ctx: Context, args: argparse.Namespace) -> None:
    user = ctx.require_user()
    if args.read:
        ctx.repo.mark_notification_read(args.read)
    for n in notifications_for(ctx.repo.snapshot, user.id):
        marker = " " if n.read else "*"
        print(f"{marker} {n.id}  {n.text}")


def _cmd_profile(ctx: Context, args: argparse.Namespace) -> None:
    user = ctx.require_user()
    updated = ctx.repo.update_user_profile(user.id, args.name)
    print(f"Name set to {updated.name}.")


def _cmd_settings(ctx: Context, args: argparse.Namespace) -> None:
    patch = {}
    if args.notifications is not None:
        patch["notificationsEnabled"] = args.notifications == "on"
    settings = ctx.repo.update_settings(patch)
    state = "on" if settings.notifications_enabled else "off"
    print(f"Notifications: {state}")


# ---------------------------------------------------------------------------
# Parser and entry point
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=APP_NAME,
        description="SynergySphere team store: projects, tasks, chat and notifications.",
    )
    parser.add_argument("--profile", "-p", help="Path to profile JSON file")
    parser.add_argument("--data-dir", help="Directory holding the store (overrides profile)")
    sub = parser.add_subparsers(dest="command", required=True, metavar="<command>")

    def add(name: str, handler: Callable[[Context, argparse.Namespace], None], help_text: str):
        p = sub.add_parser(name, help=help_text)
        p.set_defaults(handler=handler)
        return p

    p = add("signup", _cmd_signup, "Create an account and log in")
    p.add_argument("email")
    p.add_argument("password")
    p.add_argument("--name", help="Display name (defaults to the email)")

    p = add("login", _cmd_login, "Log in")
    p.add_argument("email")
    p.add_argument("password")

    add("logout", _cmd_logout, "Sign out")
    add("whoami", _cmd_whoami, "Show the signed-in user")
    add("projects", _cmd_projects, "List your projects with progress")

    p = add("project-create", _cmd_project_create, "Create a project")
    p.add_argument("name")

    p = add("member-add", _cmd_member_add, "Add a member by email or name")
    p.add_argument("project_id")
    p.add_argument("member")

    p = add("members", _cmd_members, "List project members")
    p.add_argument("project_id")

    p = add("progress", _cmd_progress, "Show project progress")
    p.add_argument("project_id")

    p = add("task-create", _cmd_task_create, "Create a task")
    p.add_argument("project_id")
    p.add_argument("title")
    p.add_argument("--description", default="")
    p.add_argument("--assignee", help="Assignee user id")
    p.add_argument("--due", help="Due date (YYYY-MM-DD)")

    p = add("task-status", _cmd_task_status, "Change a task's status")
    p.add_argument("task_id")
    p.add_argument("status", help="todo, inprogress or done")

    p = add("task-delete", _cmd_task_delete, "Delete a task")
    p.add_argument("task_id")

    p = add("board", _cmd_board, "Show the task board of a project")
    p.add_argument("project_id")

    p = add("post", _cmd_post, "Post to project chat")
    p.add_argument("project_id")
    p.add_argument("content")
    p.add_argument("--reply-to", help="Thread root message id")

    p = add("threads", _cmd_threads, "Show project chat threads")
    p.add_argument("project_id")

    p = add("notifications", _cmd_notifications, "List your notifications")
    p.add_argument("--read", metavar="ID", help="Mark a notification as read first")

    p = add("profile", _cmd_profile, "Change your display name")
    p.add_argument("name")

    p = add("settings", _cmd_settings, "Change settings")
    p.add_argument("--notifications", choices=["on", "off"])

    return parser


def _resolve_config(args: argparse.Namespace) -> AppConfig:
    config = load_config(Path(args.profile) if args.profile else None)
    if args.data_dir:
        config = AppConfig(
            data_dir=map_path(args.data_dir, base_dir=Path.cwd()),
            session_strategy=config.session_strategy,
            auth_base_url=config.auth_base_url,
            auth_timeout=config.auth_timeout,
            log_file=config.log_file,
        )
    return config


def run(argv: list[str] | None = None, transport: httpx.BaseTransport | None = None) -> int:
    """Parse arguments, run one command, and return the exit status."""
    args = build_parser().parse_args(argv)
    try:
        config = _resolve_config(args)
        setup_logging(str(config.log_file) if config.log_file else None)
        with Repository.open(FileStorage(config.data_dir)) as repo:
            session = build_session_strategy(config, repo, transport=transport)
            try:
                args.handler(Context(repo=repo, session=session), args)
            finally:
                session.close()
    except SynergyError as exc:
        print(f"ERROR: {exc}", file=sys.stderr)
        print(CLI_HELP_HINT, file=sys.stderr)
        return 1
    return 0


def main() -> None:
    """Application entry point."""
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        print()
        print("Interrupted.")
        sys.exit(130)
