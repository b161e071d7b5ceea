"""
Page Builder CLI

Command-line tools for page definition files.

Commands:
  pagebuilder inspect <page.json>   - Print the component tree of a page
  pagebuilder validate <page.json>  - Check a page against the tree invariants
"""

import logging
import sys
from pathlib import Path

import yaml
from pydantic import ValidationError

from pagebuilder.config import get_settings
from pagebuilder.core.exceptions import ManifestUnresolvedError, TreeError
from pagebuilder.models.contracts.builder import ComponentInstance, PageDefinition
from pagebuilder.services.component_registry import InMemoryComponentRegistry
from pagebuilder.services.component_tree import ComponentTree

logger = logging.getLogger(__name__)


def configure_logging() -> None:
    settings = get_settings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    if settings.debug:
        logging.getLogger("pagebuilder").setLevel(logging.DEBUG)


def read_page(path: str) -> PageDefinition:
    """Parse a page definition JSON file."""
    return PageDefinition.model_validate_json(Path(path).read_text(encoding="utf-8"))


def format_tree(components: list[ComponentInstance], indent: int = 0) -> list[str]:
    """Render a component list as indented lines."""
    lines: list[str] = []
    for component in components:
        hidden = "" if component.is_visible else " (hidden)"
        lines.append(
            f"{'  ' * indent}- {component.instance_id} "
            f"[{component.category}] {component.plugin_id}/{component.component_id}{hidden}"
        )
        lines.extend(format_tree(component.children, indent + 1))
    return lines


def handle_inspect(args: list[str]) -> int:
    if not args:
        print("Usage: pagebuilder inspect <page.json>", file=sys.stderr)
        return 1
    try:
        page = read_page(args[0])
    except (OSError, ValidationError) as e:
        print(f"Error: could not read page: {e}", file=sys.stderr)
        return 1

    print(f"{page.page_name} (version {page.version}, {page.grid.columns} columns)")
    lines = format_tree(page.components)
    print("\n".join(lines) if lines else "  (no components)")
    return 0


def handle_validate(args: list[str]) -> int:
    if not args:
        print("Usage: pagebuilder validate <page.json> [--manifests <file>]", file=sys.stderr)
        return 1

    manifests_path = get_settings().manifests_path
    if "--manifests" in args:
        idx = args.index("--manifests")
        if idx + 1 >= len(args):
            print("Error: --manifests requires a file", file=sys.stderr)
            return 1
        manifests_path = args[idx + 1]

    try:
        page = read_page(args[0])
        tree = ComponentTree.from_snapshot(page.components)
        if manifests_path:
            registry = InMemoryComponentRegistry.from_file(manifests_path)
            check_manifests(tree, registry)
    except (OSError, ValueError, yaml.YAMLError) as e:
        print(f"Error: could not read input: {e}", file=sys.stderr)
        return 1
    except TreeError as e:
        print(f"Invalid: {e.code}: {e.message}", file=sys.stderr)
        return 1

    print(f"OK: {len(tree)} components")
    return 0


def check_manifests(tree: ComponentTree, registry: InMemoryComponentRegistry) -> None:
    """
    Ensure every instance still resolves to a registered manifest.

    Raises:
        ManifestUnresolvedError: For the first instance without a manifest
    """
    for instance in tree.iter_preorder():
        manifest = registry.resolve_manifest(instance.plugin_id, instance.component_id)
        if manifest is None:
            raise ManifestUnresolvedError(instance.plugin_id, instance.component_id)
        if manifest.category != instance.category:
            logger.warning(
                f"'{instance.instance_id}' caches category {instance.category}, "
                f"manifest now says {manifest.category}"
            )


def main(args: list[str] | None = None) -> int:
    """
    Main CLI entry point.

    Args:
        args: Command-line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code (0 for success, 1 for error)
    """
    if args is None:
        args = sys.argv[1:]

    configure_logging()

    if not args:
        print_help()
        return 0

    command = args[0].lower()

    if command in ("help", "-h", "--help"):
        print_help()
        return 0

    if command == "inspect":
        return handle_inspect(args[1:])

    if command == "validate":
        return handle_validate(args[1:])

    print(f"Unknown command: {command}", file=sys.stderr)
    print_help()
    return 1


def print_help() -> None:
    """Print CLI help message."""
    print("""
Page Builder CLI - tools for page definition files

Usage:
  pagebuilder <command> [options]

Commands:
  inspect     Print the component tree of a page definition
  validate    Check a page definition against the tree invariants
              (--manifests <file> also checks every component resolves)
  help        Show this help message

Examples:
  pagebuilder inspect home.json
  pagebuilder validate home.json
  pagebuilder validate home.json --manifests components.yaml
""")


if __name__ == "__main__":
    sys.exit(main())
