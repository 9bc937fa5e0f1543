#!/usr/bin/env python3
"""
Cortex Compression Demo

Walks a handful of notation strings through the engine:
- parse -> validate -> compress (CortexCore) -> serialize -> reparse
- second pass served from the cache (same output, hit counted)
- semantic integrity and size savings reported per case

Run from the repository root:
    python examples/compression_demo.py
"""

import logging
import sys
from pathlib import Path

# Ensure cortex is importable
sys.path.insert(0, str(Path(__file__).parent.parent))

from cortex import (
    CortexConfig,
    CortexCore,
    analyze_frame,
    parse_cortex_string,
    serialize_frame,
    validate_frame,
)


CASES = [
    (
        "redundant query",
        "(query: action:action_get action_2:action_fetch_primary "
        "target:entity_report target_2:entity_invoice object:entity_receipt tags:[])",
    ),
    (
        "duplicate list items",
        "(list: item_1:concept_a item_2:concept_b item_3:concept_a item_4:concept_c)",
    ),
    (
        "nested answer",
        '(answer: content:(list: item_1:"x" item_2:"x") summary:"two identical items" sources:[])',
    ),
    (
        "already minimal",
        "(event: action:action_deploy agent:entity_ci status:done)",
    ),
]


def run_case(core, name, notation):
    frame = parse_cortex_string(notation)
    validation = validate_frame(frame)

    first = core.compress(frame)
    second = core.compress(frame)

    output_text = serialize_frame(first.output)
    reparsed = parse_cortex_string(output_text)

    print(f"\n=== {name} ===")
    print(f"  input      : {serialize_frame(frame)}")
    print(f"  valid      : {validation.is_valid} (complexity {validation.complexity})")
    print(f"  output     : {output_text}")
    print(f"  integrity  : {first.metadata['semantic_integrity']:.3f}")
    for opt in first.optimizations:
        print(f"  saved      : {opt.tokens_saved} tokens ({opt.reduction_percentage:.1f}%)")
    if not first.optimizations:
        print("  saved      : nothing to compress")
    print(f"  cached run : from_cache={second.from_cache} hit_count={second.metadata['hit_count']}")

    assert reparsed == first.output, "round trip changed the frame"
    assert second.output == first.output, "cached output differs"
    return analyze_frame(first.output)


def main():
    logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(name)s: %(message)s")
    config = CortexConfig.from_env().with_overrides(min_semantic_integrity=0.0)
    core = CortexCore(config)

    for name, notation in CASES:
        analysis = run_case(core, name, notation)
        print(f"  analysis   : {analysis.description} [hash {analysis.hash}]")

    stats = core.get_stats()
    print("\n=== STATS ===")
    for key, value in stats.to_dict().items():
        print(f"  {key}: {value}")
    print(f"  cache: {core.get_cache_info()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
