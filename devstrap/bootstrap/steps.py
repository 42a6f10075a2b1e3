"""
Bootstrap step implementations.

Each step type is a function ``(options, context) -> str`` registered in
``STEP_HANDLERS``. Options arrive with ``${var}`` references already
substituted. Handlers raise ``DevstrapError`` subclasses on failure and
return a short description of what they did.

Every handler honours ``context.dry_run``: nothing is executed or written,
the plan is logged instead.
"""

import logging
import os
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from devstrap.bootstrap.installers import PackageSpec, get_installer
from devstrap.core.download import download_file
from devstrap.core.exceptions import RecipeError
from devstrap.core.filesystem import append_once, ensure_directory, expand_path
from devstrap.core.platform import PlatformInfo
from devstrap.core.process import command_succeeds, run_command
from devstrap.core.prompts import Prompter

logger = logging.getLogger(__name__)


@dataclass
class StepContext:
    """
    Shared state for the steps of one recipe run.

    Attributes:
        prompter: Source of interactive input
        platform: Current platform
        variables: Resolved variables; ``command`` steps may add captures
        secrets: Values masked in logs
        dry_run: Log instead of acting
    """

    prompter: Prompter
    platform: PlatformInfo
    variables: Dict[str, str] = field(default_factory=dict)
    secrets: List[str] = field(default_factory=list)
    dry_run: bool = False

    def run(self, command, **kwargs):
        return run_command(command, dry_run=self.dry_run, redact=self.secrets, **kwargs)


def _parse_packages(raw) -> List[PackageSpec]:
    if isinstance(raw, str):
        raw = [raw]
    if not isinstance(raw, list) or not raw:
        raise RecipeError("packages must be a non-empty list")

    specs = []
    for entry in raw:
        if isinstance(entry, str):
            specs.append(PackageSpec(entry))
        elif isinstance(entry, dict) and entry.get("name"):
            args = entry.get("args", [])
            if isinstance(args, str):
                args = args.split()
            specs.append(PackageSpec(str(entry["name"]), [str(a) for a in args]))
        else:
            raise RecipeError(f"Invalid package entry: {entry!r}")
    return specs


def packages_step(options: Dict[str, Any], context: StepContext) -> str:
    """Install packages with one package manager, skipping installed ones."""
    installer = get_installer(str(options["manager"]))
    packages = _parse_packages(options["packages"])

    if options.get("update"):
        update = installer.update_argv()
        if update:
            context.run(update)

    installed = []
    skipped = []
    for package in packages:
        check = installer.is_installed_argv(package)
        if not context.dry_run and check and command_succeeds(check):
            logger.info(f"{installer.name}: {package.name} already installed")
            skipped.append(package.name)
            continue
        context.run(installer.install_argv(package))
        installed.append(package.name)

    message = f"{installer.name}: installed {len(installed)}"
    if skipped:
        message += f", already present {len(skipped)}"
    return message


def command_step(options: Dict[str, Any], context: StepContext) -> str:
    """
    Run a command; a string runs through the shell.

    ``capture: name`` stores trimmed stdout in variable ``name`` for later
    steps; ``secret: true`` masks it in logs.
    """
    command = options["run"]
    if not isinstance(command, (str, list)):
        raise RecipeError("run must be a string or a list")

    cwd = options.get("cwd")
    capture = options.get("capture")
    env = {str(k): str(v) for k, v in (options.get("env") or {}).items()}

    result = context.run(
        command,
        cwd=expand_path(cwd) if cwd else None,
        env=env or None,
        capture=bool(capture),
    )

    if capture:
        value = result.stdout.strip() if not result.dry_run else f"<{capture}>"
        context.variables[str(capture)] = value
        if options.get("secret") and value:
            context.secrets.append(value)
        return f"captured {capture}"
    return "ran command"


def script_step(options: Dict[str, Any], context: StepContext) -> str:
    """Download an installer script and run it with an interpreter."""
    url = str(options["url"])
    interpreter = options.get("interpreter", "bash")
    if isinstance(interpreter, str):
        interpreter = interpreter.split()
    args = [str(a) for a in options.get("args", [])]
    env = {str(k): str(v) for k, v in (options.get("env") or {}).items()}

    if context.dry_run:
        logger.info(f"[dry-run] download {url}")
        context.run([*interpreter, "<script>", *args])
        return f"would run {url}"

    with tempfile.TemporaryDirectory(prefix="devstrap_") as tmp:
        script = download_file(url, Path(tmp) / "install-script")
        context.run([*interpreter, str(script), *args], env=env or None)
    return f"ran {url}"


def _config_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def git_config_step(options: Dict[str, Any], context: StepContext) -> str:
    """Set global git configuration values."""
    settings = options["settings"]
    if not isinstance(settings, dict) or not settings:
        raise RecipeError("settings must be a non-empty mapping")

    scope = options.get("scope", "global")
    for key, value in settings.items():
        context.run(["git", "config", f"--{scope}", str(key), _config_value(value)])
    return f"set {len(settings)} git setting(s)"


def ssh_key_step(options: Dict[str, Any], context: StepContext) -> str:
    """
    Ensure an ssh key exists and is registered.

    Generates the key when missing, prints the public key, optionally waits
    for the user to add it to the remote host, writes an ssh config block and
    verifies the connection.
    """
    key_type = str(options.get("key_type", "ed25519"))
    ssh_dir = expand_path(options.get("ssh_dir", "~/.ssh"))
    key_path = expand_path(options.get("path", ssh_dir / f"id_{key_type}"))
    comment = str(options.get("comment", ""))
    passphrase = str(options.get("passphrase", ""))

    generated = False
    if context.dry_run:
        logger.info(f"[dry-run] ensure directory {ssh_dir} (0700)")
    else:
        ensure_directory(ssh_dir, mode=0o700)

    if key_path.exists():
        logger.info(f"ssh key already exists: {key_path}")
    else:
        argv = ["ssh-keygen", "-t", key_type, "-f", str(key_path), "-N", passphrase]
        if key_type == "rsa":
            argv[3:3] = ["-b", str(options.get("bits", 4096))]
        if comment:
            argv += ["-C", comment]
        context.run(argv)
        generated = True

    public_key = key_path.with_name(key_path.name + ".pub")
    if public_key.exists():
        print(public_key.read_text(encoding="utf-8").strip())
        print()

    if generated and options.get("pause") and not context.dry_run:
        context.prompter.pause(str(options["pause"]))

    config = options.get("config")
    if config:
        config_file = ssh_dir / "config"
        if context.dry_run:
            logger.info(f"[dry-run] append ssh config block to {config_file}")
        else:
            append_once(config_file, str(config), mode=0o600)

    verify = options.get("verify")
    if verify:
        # GitHub exits 1 even when authentication succeeds
        result = context.run(["ssh", "-T", str(verify)], check=False)
        if not result.dry_run:
            logger.info(f"ssh -T {verify} exited {result.returncode}")

    return "generated key" if generated else "key present"


def apply_profile_environment(options: Dict[str, Any]) -> None:
    """
    Apply a profile step's ``prepend_path`` and ``environment`` to this process.

    The runner also calls this for profile steps it skips, so later steps of
    a resumed run see the same PATH as an uninterrupted one.
    """
    for directory in options.get("prepend_path", []) or []:
        directory = str(expand_path(directory))
        current = os.environ.get("PATH", "")
        if directory not in current.split(os.pathsep):
            os.environ["PATH"] = directory + os.pathsep + current
            logger.debug(f"Prepended to PATH: {directory}")

    for name, value in (options.get("environment") or {}).items():
        os.environ[str(name)] = str(value)


def profile_step(options: Dict[str, Any], context: StepContext) -> str:
    """
    Append lines to a shell profile once.

    ``prepend_path`` also updates PATH for the remaining steps of this run,
    the equivalent of ``export PATH=...`` in a script.
    """
    profile = expand_path(options["file"])
    lines = options["lines"]
    block = lines if isinstance(lines, str) else "\n".join(str(line) for line in lines)
    marker = options.get("marker")

    apply_profile_environment(options)

    if context.dry_run:
        logger.info(f"[dry-run] append to {profile}:\n{block}")
        return f"would update {profile}"

    changed = append_once(profile, block, marker=marker)
    return f"updated {profile}" if changed else f"{profile} already configured"


def directory_step(options: Dict[str, Any], context: StepContext) -> str:
    """Create a directory with optional permissions."""
    path = expand_path(options["path"])
    mode = options.get("mode")
    if isinstance(mode, str):
        try:
            mode = int(mode, 8)
        except ValueError as e:
            raise RecipeError(f"Invalid directory mode: {mode!r}") from e

    if context.dry_run:
        logger.info(f"[dry-run] ensure directory {path}")
        return f"would create {path}"

    existed = path.is_dir()
    ensure_directory(path, mode=mode)
    return f"{path} exists" if existed else f"created {path}"


def pause_step(options: Dict[str, Any], context: StepContext) -> str:
    """Wait for the user to finish a manual action."""
    if context.dry_run:
        logger.info(f"[dry-run] pause: {options['message']}")
        return "would pause"
    context.prompter.pause(str(options["message"]))
    return "confirmed"


STEP_HANDLERS: Dict[str, Callable[[Dict[str, Any], StepContext], str]] = {
    "packages": packages_step,
    "command": command_step,
    "script": script_step,
    "git_config": git_config_step,
    "ssh_key": ssh_key_step,
    "profile": profile_step,
    "directory": directory_step,
    "pause": pause_step,
}


def get_handler(step_type: str) -> Callable[[Dict[str, Any], StepContext], str]:
    """
    Handler for a step type.

    Raises:
        RecipeError: If the type has no handler
    """
    handler: Optional[Callable] = STEP_HANDLERS.get(step_type)
    if handler is None:
        raise RecipeError(f"No handler for step type: {step_type}")
    return handler
