"""Command-line interface for rootfs-assemble."""

import argparse
import json
import logging
import sys
from dataclasses import replace
from pathlib import Path

from assembly import RootfsAssembler
from commandoutput import print_assembly_plan
from cryptsetup import encrypt_device
from environment import MountEnvironment
from errors import AssemblyError, ConfigurationError
from model import KeySlot, MountSpec, OverlaySpec, VolumeSpec
from mount_config import load_mount_spec, spec_to_dict

ROOTFS_ASSEMBLE_VERSION = "0.1.0"

log = logging.getLogger(__name__)


def report_failure(error: AssemblyError, *hints: str) -> None:
    """Describe a failed action on stderr, framed so it stands out in boot logs.

    The first line names the error kind, e.g. 'Error: Failed to mount /oem: ...
    (MountError)'. Hints follow, one per line.
    """
    rule = "=" * 60
    body = "\n".join(hints)
    print(f"{rule}\nError: {error} ({type(error).__name__})\n\n{body}\n{rule}", file=sys.stderr)


def configure_logging(debug: bool = False, log_file: str | None = None) -> None:
    """Set up logging once for the whole process."""
    logging.basicConfig(
        filename=log_file,
        level=logging.DEBUG if debug else logging.INFO,
        format="%(asctime)s - %(levelname)s - %(message)s",
        force=True,
    )


def create_parser() -> argparse.ArgumentParser:
    """Create argument parser for the rootfs-assemble CLI."""
    parser = argparse.ArgumentParser(
        prog="rootfs-assemble",
        description="Assemble the writable root filesystem of an immutable system.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {ROOTFS_ASSEMBLE_VERSION}")
    parser.add_argument("--debug", action="store_true", help="Enable debug logging")
    parser.add_argument("--log-file", metavar="PATH", help="Write the log to PATH instead of stderr")

    subparsers = parser.add_subparsers(dest="action", required=True)

    # List and flag defaults are None so only explicit values override the config file
    mount = subparsers.add_parser("mount", help="Mount the root filesystem and write its fstab")
    mount.add_argument("mount_point", nargs="?", metavar="MOUNTPOINT", help="Mountpoint for rootfs (default: /sysroot)")
    mount.add_argument("--config", metavar="FILE", help="JSON mount specification")
    mount.add_argument("--image", help="Image to mount as root, relative to state root")
    mount.add_argument("--root-perm", choices=("ro", "rw"), help="Permissions for root mount")
    mount.add_argument("--switch-root", action=argparse.BooleanOptionalAction, default=None,
                       help="Switch into newly mounted root")
    mount.add_argument("--overlay", metavar="TYPE:SIZE", help="Overlay store (default: tmpfs:25%%)")
    mount.add_argument("--rw-path", dest="rw_paths", metavar="PATH", action="append",
                       help="Path to make writable with an overlay (repeatable)")
    mount.add_argument("--volume", dest="volumes", metavar="LABEL=NAME:PATH", action="append",
                       help="Volume to mount by label (repeatable)")
    mount.add_argument("--persistent-state-path", dest="persistent_state_paths", metavar="PATH",
                       action="append", help="Path kept across reboots (repeatable)")
    mount.add_argument("--persistent-state-bind", action=argparse.BooleanOptionalAction, default=None,
                       help="Keep persistent paths with bind mounts")
    mount.add_argument("--persistent-state-target", metavar="PATH", help="Where persistent state is stored")
    mount.add_argument("--dry-run", action="store_true", help="Print the plan and fstab, mount nothing")
    mount.add_argument("--review", action="store_true", help="Review the plan interactively before mounting")
    mount.add_argument("--print-config", action="store_true", help="Print the effective configuration as JSON")

    encrypt = subparsers.add_parser("encrypt", help="Format a device with LUKS and open it")
    encrypt.add_argument("device", metavar="DEVICE", help="Block device to encrypt")
    encrypt.add_argument("mapped_name", metavar="NAME", help="Name under /dev/mapper")
    encrypt.add_argument("--key-slot", dest="key_slots", metavar="N", type=int, action="append",
                         help="LUKS key slot (repeatable, only the first is enrolled; default: 0)")
    encrypt.add_argument("--passphrase-file", metavar="FILE", help="Read the passphrase from FILE")
    encrypt.add_argument("--key-file", metavar="FILE", help="Key file passed to cryptsetup")

    return parser


def build_mount_spec(args: argparse.Namespace) -> MountSpec:
    """Combine defaults, the optional config file and explicit flags.

    Explicit flags win over the config file, which wins over the defaults.
    """
    spec = MountSpec()
    if args.config:
        spec = load_mount_spec(Path(args.config), spec)

    overrides = {}
    if args.mount_point is not None:
        overrides["mount_point"] = args.mount_point
    if args.image is not None:
        overrides["image"] = args.image
    if args.root_perm is not None:
        overrides["root_permission"] = args.root_perm
    if args.switch_root is not None:
        overrides["switch_root"] = args.switch_root
    if args.overlay is not None:
        overrides["overlay"] = OverlaySpec.parse(args.overlay)
    if args.rw_paths is not None:
        overrides["rw_paths"] = tuple(args.rw_paths)
    if args.volumes is not None:
        overrides["volumes"] = tuple(VolumeSpec.parse(v) for v in args.volumes)
    if args.persistent_state_paths is not None:
        overrides["persistent_state_paths"] = tuple(args.persistent_state_paths)
    if args.persistent_state_bind is not None:
        overrides["persistent_state_bind"] = args.persistent_state_bind
    if args.persistent_state_target is not None:
        overrides["persistent_state_target"] = args.persistent_state_target

    return replace(spec, **overrides)


def review_plan(assembler: RootfsAssembler, warnings: list[str]) -> bool:
    """Show the review screen. Returns True when the user chose to assemble."""
    from app import AssemblyReviewApp

    app = AssemblyReviewApp(assembler.spec, assembler.plan(), assembler.render_fstab(), warnings)
    app.run()
    return app.confirmed


def run_mount(args: argparse.Namespace, env: MountEnvironment | None = None) -> int:
    """Handle the mount action."""
    spec = build_mount_spec(args)

    if args.print_config:
        print(json.dumps(spec_to_dict(spec), indent=2))
        return 0

    assembler = RootfsAssembler(spec, env)

    if args.dry_run or args.review:
        warnings = assembler.validate()
        if args.dry_run:
            print_assembly_plan(spec, assembler.plan(), assembler.render_fstab(), warnings)
            return 0
        if not review_plan(assembler, warnings):
            log.info("Assembly cancelled")
            return 0

    assembler.assemble()
    if spec.switch_root:
        log.info(f"Switch root into {spec.mount_point} is left to the caller")
    return 0


def read_passphrase(path: str) -> str:
    """Read a passphrase file, dropping one trailing newline."""
    try:
        content = Path(path).read_text()
    except OSError as e:
        raise ConfigurationError(f"Cannot read passphrase file {path}: {e.strerror or e}") from e
    return content.removesuffix("\n")


def run_encrypt(args: argparse.Namespace, env: MountEnvironment | None = None) -> int:
    """Handle the encrypt action."""
    env = env or MountEnvironment.host()
    passphrase = read_passphrase(args.passphrase_file) if args.passphrase_file else ""
    slots = [
        KeySlot(slot=n, passphrase=passphrase, key_file=args.key_file or "")
        for n in (args.key_slots if args.key_slots is not None else [0])
    ]
    mapped = encrypt_device(env.runner, args.device, args.mapped_name, slots)
    print(mapped)
    return 0


def main(argv: list[str] | None = None, env: MountEnvironment | None = None) -> int:
    """Entry point. Returns the process exit status."""
    parser = create_parser()
    args = parser.parse_args(argv)
    configure_logging(args.debug, args.log_file)

    try:
        if args.action == "mount":
            return run_mount(args, env)
        return run_encrypt(args, env)
    except AssemblyError as e:
        log.error(str(e))
        if args.action == "mount":
            report_failure(e, "The root filesystem was not fully assembled.", "Mounts made so far are left in place.")
        else:
            report_failure(e, f"Device {args.device} was not prepared.")
        return 1


def main_entry() -> None:
    """Console script wrapper."""
    sys.exit(main())


if __name__ == "__main__":
    main_entry()
