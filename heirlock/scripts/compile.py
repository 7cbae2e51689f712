"""
compile.py — Compile Heirlock contract to TEAL artifacts
=========================================================
Usage:
    python scripts/compile.py

Outputs to contracts/artifacts/:
    Heirlock.approval.teal
    Heirlock.clear.teal
    Heirlock.abi.json
"""

import sys, json, pathlib

sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))
from contracts.heirlock import app

ARTIFACTS = pathlib.Path(__file__).parent.parent / "contracts" / "artifacts"


def write_artifacts(out: pathlib.Path = ARTIFACTS):
    """Build the application and write approval/clear TEAL plus the ABI."""
    out.mkdir(parents=True, exist_ok=True)
    spec = app.build()

    (out / "Heirlock.approval.teal").write_text(spec.approval_program)
    (out / "Heirlock.clear.teal").write_text(spec.clear_program)
    (out / "Heirlock.abi.json").write_text(json.dumps(spec.contract.dictify(), indent=2))
    return spec


if __name__ == "__main__":
    spec = write_artifacts()
    print("✅ Artifacts written to contracts/artifacts/")
    print(f"   Approval TEAL : {len(spec.approval_program.splitlines())} lines")
    print(f"   Methods       : {[m.name for m in spec.contract.methods]}")
