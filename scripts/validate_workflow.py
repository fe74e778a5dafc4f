"""Script to validate the transfer workflow definition"""
import argparse
import json
import sys
from typing import List, Optional, Tuple

from deedflow.domain.errors import ConfigurationError
from deedflow.engine.definitions import WorkflowConfig, build_workflow_config
from deedflow.utils.idgen import generate_correlation_id
from deedflow.utils.logger import set_correlation_id, setup_logging


def analyze_workflow(config: WorkflowConfig) -> Tuple[List[str], List[str]]:
    """Structural checks beyond the ones enforced at bootstrap; returns (errors, warnings)"""
    graph = config.graph
    errors = []
    warnings = []

    reachable = set(graph.reachable_from(config.initial_stage))
    for stage in graph.stages:
        if stage.code not in reachable:
            warnings.append(f"Stage '{stage.code}' is unreachable from {config.initial_stage}")
        if not stage.is_terminal and not graph.edges(stage.code):
            errors.append(f"Stage '{stage.code}' has no outgoing transitions but is not terminal")

    terminals = [s.code for s in graph.stages if s.is_terminal]
    if not terminals:
        errors.append("No terminal stage defined")
    elif not any(code in reachable for code in terminals):
        errors.append("No terminal stage is reachable from the initial stage")

    used_guards = {t.guard_name for t in graph.transitions}
    for name in config.registry.names():
        if name not in used_guards:
            warnings.append(f"Guard '{name}' is registered but not used by any transition")

    return errors, warnings


def validate_workflow(config: Optional[WorkflowConfig] = None, show_json: bool = False) -> bool:
    try:
        config = config or build_workflow_config()
    except ConfigurationError as e:
        print(f"❌ Workflow configuration failed: {e.message}")
        print(f"   Details: {e.details}")
        return False

    graph = config.graph

    print("=" * 60)
    print("WORKFLOW ANALYSIS")
    print("=" * 60)

    print(f"\n📊 STAGE SUMMARY ({len(graph.stages)} total):")
    for stage in graph.stages:
        marker = " 🏁" if stage.is_terminal else ""
        start = " ⭐" if stage.code == config.initial_stage else ""
        print(f"   {stage.sort_order:>2}. {stage.code} ({stage.name}){start}{marker}")

    print(f"\n🔗 TRANSITIONS: {len(graph.transitions)}")
    print(f"🛡️ GUARDS: {len(config.registry)}")
    print(f"🚀 INITIAL STAGE: {config.initial_stage}")

    print("\n📂 SECTION GROUPS:")
    for group in config.section_groups.values():
        print(f"   • {group.code}: {', '.join(s.value for s in group.sections)}")

    print("\n" + "=" * 60)
    print("TRANSITION FLOW")
    print("=" * 60)

    for t in graph.transitions:
        auto = " (auto)" if t.auto_progress else ""
        print(f"   {t.from_stage} --[{t.guard_name}]--> {t.to_stage}{auto}")

    print("\n" + "=" * 60)
    print("VALIDATION RESULTS")
    print("=" * 60)

    errors, warnings = analyze_workflow(config)

    if errors:
        print("\n❌ ERRORS:")
        for e in errors:
            print(f"   • {e}")

    if warnings:
        print("\n⚠️ WARNINGS:")
        for w in warnings:
            print(f"   • {w}")

    if not errors and not warnings:
        print("\n🎉 WORKFLOW IS VALID!")
    elif not errors:
        print("\n✅ WORKFLOW IS VALID (with warnings)")
    else:
        print("\n❌ WORKFLOW HAS ERRORS")

    if show_json:
        print("\n" + "=" * 60)
        print("RAW DEFINITION (for debugging)")
        print("=" * 60)
        definition = {
            "initial_stage": config.initial_stage,
            "stages": [s.model_dump() for s in graph.stages],
            "transitions": [t.model_dump() for t in graph.transitions],
            "section_groups": [g.model_dump(mode="json") for g in config.section_groups.values()],
        }
        print(json.dumps(definition, indent=2, default=str))

    return not errors


def main():
    parser = argparse.ArgumentParser(description="Validate the transfer workflow definition")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Print the raw definition as JSON"
    )
    args = parser.parse_args()

    setup_logging()
    set_correlation_id(generate_correlation_id())

    sys.exit(0 if validate_workflow(show_json=args.json) else 1)


if __name__ == "__main__":
    main()
