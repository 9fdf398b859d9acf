"""
unvm - universal node.js version manager.

Usage:
    unvm install 20            # Install the latest 20.x
    unvm use 20                # Use it in the current shell
    unvm link lts              # Make the newest installed LTS the default
    unvm auto-use enable --cd  # Switch automatically from .nvmrc on cd
    unvm ls                    # List installed versions

The shell wrapper (``nvm``) sources the session file written by each
switching command to apply the new PATH.
"""

from __future__ import annotations

import argparse
import logging
import os
import sys
from dataclasses import dataclass
from typing import Mapping

from . import __version__
from .catalog import VersionCatalog
from .collectors import HttpOptions, remote_loader
from .config import (
    Config,
    get_dist_urls,
    load_config,
    resolve_corepack,
    resolve_proxy,
    resolve_verify_ssl,
)
from .environment import EnvironmentState
from .errors import UnvmError
from .installer import cleanup, install_version, uninstall_version
from .links import read_link_version
from .logging_config import setup_logging
from .paths import NvmPaths
from .platforms import SHELLS, Platform, select_platform
from .profile import MalformedBlock, detect_shell, disable_auto_use, enable_auto_use, profile_target
from .render import render_installed, render_remote
from .session import select_flavor
from .switch import SwitchCoordinator

logger = logging.getLogger(__name__)

ENV_HELP = """envs:

  NVM_HOME             - base directory (default: ~/nvm)
  NVM_LINK             - permanent link directory (default: $NVM_HOME/nodejs/bin)
  NVM_NODEJS_ORG_MIRROR - ';'-separated mirror URLs tried before nodejs.org
  NVM_PROXY            - set proxy URL
  HTTP_PROXY           - fallback proxy for HTTP requests
  HTTPS_PROXY          - fallback proxy for HTTPS requests
  NVM_VERIFY_SSL       - (true/false) turn on/off SSL certificate verification (default: true)
  NVM_COREPACK_ENABLED - (true/false) enable corepack on install (default: false)

  Proxy priority: -p flag > NVM_PROXY > config > HTTPS_PROXY > HTTP_PROXY

Examples:

    nvm install lts
    nvm install latest
    nvm install 20 --corepack
    nvm use 20
    nvm link lts
    nvm uninstall 22.3
    nvm postinstall 20.11.0
"""


@dataclass
class Context:
    """Everything one invocation needs, built from flags, env and config."""
    config: Config
    platform: Platform
    paths: NvmPaths
    mirrors: list[str]
    http: HttpOptions
    proxy_source: str | None
    catalog: VersionCatalog
    coordinator: SwitchCoordinator
    environ: Mapping[str, str]


def build_context(args: argparse.Namespace, environ: Mapping[str, str] | None = None) -> Context:
    """
    Assemble the invocation context.

    Raises:
        ValueError: If an explicit --config file cannot be loaded
    """
    environ = os.environ if environ is None else environ
    verbose = getattr(args, "verbose", False)

    config = load_config(getattr(args, "config", None), verbose=verbose)
    platform = select_platform(getattr(args, "shell", None))
    paths = NvmPaths.from_environ(environ, config)

    mirrors = get_dist_urls(config, environ, getattr(args, "mirror", None))
    proxy, proxy_source = resolve_proxy(environ, mirrors[0], getattr(args, "proxy", None), config)
    http = HttpOptions(
        timeout=config.preferences.timeout_seconds,
        proxy=proxy,
        verify_ssl=resolve_verify_ssl(environ, getattr(args, "verifyssl", None), config),
    )

    catalog = VersionCatalog.from_store(
        paths.store_dir,
        platform,
        remote_loader(mirrors, paths.cache_dir, http, config.preferences.cache_ttl_seconds),
    )
    state = EnvironmentState.from_environ(environ, platform.delimiter, read_link_version(paths.link_dir))
    coordinator = SwitchCoordinator(
        paths,
        platform,
        catalog,
        state,
        flavor=select_flavor(getattr(args, "shell", None), platform.name, environ),
        link_retries=config.preferences.link_retries,
        verbose=verbose,
    )
    return Context(config, platform, paths, mirrors, http, proxy_source, catalog, coordinator, environ)


def _log_proxy(ctx: Context) -> None:
    if ctx.http.proxy:
        logger.info(f"Using proxy {ctx.http.proxy} (from {ctx.proxy_source})")


def cmd_install(args: argparse.Namespace, ctx: Context) -> int:
    """Install a version from the remote index."""
    _log_proxy(ctx)
    install_version(
        args.version,
        ctx.paths,
        ctx.platform,
        ctx.catalog,
        ctx.mirrors,
        ctx.http,
        corepack=resolve_corepack(ctx.environ, args.corepack, ctx.config),
        link_retries=ctx.config.preferences.link_retries,
        verbose=args.verbose,
        on_installed=ctx.coordinator.announce_install,
    )
    return 0


def cmd_uninstall(args: argparse.Namespace, ctx: Context) -> int:
    """Remove an installed version."""
    uninstall_version(args.version, ctx.coordinator, latest=args.latest)
    return 0


def cmd_postinstall(args: argparse.Namespace, ctx: Context) -> int:
    """Hand an installed version to the post-install hooks again."""
    ctx.coordinator.post_install(args.version)
    return 0


def cmd_use(args: argparse.Namespace, ctx: Context) -> int:
    """Use a version in the current shell."""
    ctx.coordinator.use(args.version)
    return 0


def cmd_auto_use(args: argparse.Namespace, ctx: Context) -> int:
    """Run auto-use for the current directory, or edit the shell profile."""
    if args.action is None:
        ctx.coordinator.auto_use(silent=args.silent, verbose=args.verbose)
        return 0

    if args.action not in ("enable", "disable"):
        logger.error(f"Unknown action: {args.action}")
        logger.info("Use: nvm auto-use [enable|disable]")
        return 1

    home = os.path.expanduser("~")
    shell = detect_shell(args.shell, ctx.environ)
    target = profile_target(shell, home, ctx.environ)
    try:
        if args.action == "enable":
            enable_auto_use(target, ctx.paths.base_dir, home, use_cd_wrapper=args.cd)
        else:
            disable_auto_use(target)
    except MalformedBlock as e:
        logger.warning(f"Found markers but they're malformed in {target.path}: {e}")
        logger.warning("Please remove the auto-use block manually")
        return 1
    return 0


def cmd_stop(args: argparse.Namespace, ctx: Context) -> int:
    """Undo effects of nvm in the current shell."""
    ctx.coordinator.stop()
    return 0


def cmd_link(args: argparse.Namespace, ctx: Context) -> int:
    """Permanently link a version as the default."""
    ctx.coordinator.link(args.version)
    return 0


def cmd_unlink(args: argparse.Namespace, ctx: Context) -> int:
    """Remove the permanent default link."""
    ctx.coordinator.unlink()
    return 0


def cmd_ls(args: argparse.Namespace, ctx: Context) -> int:
    """List installed versions."""
    state = ctx.coordinator.state
    for line in render_installed(ctx.catalog.installed, state.active_version, state.link_version):
        print(line)
    return 0


def cmd_ls_remote(args: argparse.Namespace, ctx: Context) -> int:
    """List remote versions available for install."""
    _log_proxy(ctx)
    entries = [e for e in ctx.catalog.remote_entries() if e.is_lts or not args.lts]
    for line in render_remote(entries, ctx.catalog.installed):
        print(line)
    return 0


def cmd_cleanup(args: argparse.Namespace, ctx: Context) -> int:
    """Remove downloaded archives and cached indexes."""
    cleanup(ctx.paths)
    return 0


def _add_global_options(parser: argparse.ArgumentParser, suppress: bool = False) -> None:
    # Subcommands accept the same flags after the command name; SUPPRESS
    # keeps them from overwriting values given before it
    default = argparse.SUPPRESS if suppress else None
    flag_default = argparse.SUPPRESS if suppress else False
    parser.add_argument("--proxy", "-p", default=default, help="Set network proxy URL")
    parser.add_argument(
        "--verifyssl", "--ssl",
        dest="verifyssl", action="store_true", default=default,
        help="Verify SSL certificates",
    )
    parser.add_argument(
        "--no-ssl", "--no-verifyssl",
        dest="verifyssl", action="store_false", default=default,
        help="Do not verify SSL certificates",
    )
    parser.add_argument("--shell", choices=SHELLS, default=default, help="Calling shell")
    parser.add_argument("--mirror", default=default, help="Use only this distribution mirror")
    parser.add_argument("--config", default=default, help="Configuration file")
    parser.add_argument("--verbose", "-v", action="store_true", default=flag_default, help="Verbose output")
    parser.add_argument("--quiet", "-q", action="store_true", default=flag_default, help="Only show warnings and errors")
    parser.add_argument("--log-file", default=default, help="Also write a debug log to this file")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="nvm",
        description="Universal node.js version manager",
        epilog=ENV_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    _add_global_options(parser)

    globals_parent = argparse.ArgumentParser(add_help=False)
    _add_global_options(globals_parent, suppress=True)

    sub = parser.add_subparsers(dest="command", metavar="<command>")

    def command(name: str, func, help_text: str, aliases: tuple[str, ...] = ()) -> argparse.ArgumentParser:
        p = sub.add_parser(name, help=help_text, aliases=list(aliases), parents=[globals_parent])
        p.set_defaults(func=func)
        return p

    p = command("install", cmd_install, "install the given version of Node.js")
    p.add_argument("version")
    p.add_argument("--corepack", dest="corepack", action="store_true", default=None,
                   help="Enable corepack after installation")
    p.add_argument("--no-corepack", dest="corepack", action="store_false", default=None,
                   help="Do not enable corepack")

    p = command("uninstall", cmd_uninstall, "uninstall the given version of Node.js")
    p.add_argument("version")
    p.add_argument("--latest", action="store_true", help="Match latest version to uninstall")

    p = command("use", cmd_use, "use the given version of Node.js in current shell")
    p.add_argument("version", nargs="?")

    p = command(
        "auto-use", cmd_auto_use,
        "automatically use version from .nvmrc, .node-version, or package.json",
    )
    p.add_argument("action", nargs="?", help="enable [--cd] | disable")
    p.add_argument("--cd", action="store_true", help="Use cd wrapper mode instead of prompt-based (for enable)")
    p.add_argument("--silent", action="store_true",
                   help="Suppress 'no version file found' message (used by shell hooks)")

    command("stop", cmd_stop, "undo effects of nvm in current shell", aliases=("unuse",))

    p = command("link", cmd_link, "permanently link the version of Node.js as default (supports 'lts' and 'latest')")
    p.add_argument("version")

    command("unlink", cmd_unlink, "permanently unlink the default version")
    command("ls", cmd_ls, "list all the installed Node.js versions")

    p = command("ls-remote", cmd_ls_remote, "list remote versions available for install")
    p.add_argument("--lts", action="store_true", help="Only list LTS versions")

    command("cleanup", cmd_cleanup, "remove stale local caches")

    p = command("postinstall", cmd_postinstall, "invoke custom post install script for the given version")
    p.add_argument("version", nargs="?")
    return parser


def main(argv: list[str] | None = None, environ: Mapping[str, str] | None = None) -> int:
    """Main entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(verbose=args.verbose, quiet=args.quiet, log_file=args.log_file)

    if not getattr(args, "func", None):
        parser.print_help()
        return 1

    try:
        ctx = build_context(args, environ)
    except ValueError as e:
        logger.error(str(e))
        return 1

    try:
        return args.func(args, ctx)
    except UnvmError as e:
        logger.error(e.message)
        if e.remediation:
            logger.info(e.remediation)
        return e.exit_code


if __name__ == "__main__":
    try:
        sys.exit(main())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        sys.exit(130)
