"""
deploy.py — Heirlock contract deployment script
================================================
Usage:
    python scripts/compile.py
    python scripts/deploy.py

Requirements:
    pip install -e .
    ALGO_MNEMONIC env var must be set (or use .env file)

Optional:
    NETWORK                   testnet (default) | localnet
    HEIRLOCK_INITIAL_HEIR     heir address (required)
    HEIRLOCK_INITIAL_DEPOSIT  microALGO locked right after create (default 1 ALGO)

The app account only exists once the app is created, so the initial
deposit is a plain payment sent straight after the create call. On top
of it the account's 0.1 ALGO minimum balance is funded, which is never
withdrawable.
"""

import os, sys, json, base64, pathlib, time, math
from dotenv import load_dotenv
from algosdk import abi, encoding, logic, mnemonic, account
from algosdk.atomic_transaction_composer import (
    AccountTransactionSigner,
    AtomicTransactionComposer,
)
from algosdk.v2client import algod as algod_client_module
from algosdk.transaction import (
    OnComplete, PaymentTxn, StateSchema, wait_for_confirmation
)
from algosdk.error import AlgodHTTPError

sys.path.insert(0, str(pathlib.Path(__file__).parent.parent))
from contracts.events import decode_logs, is_zero_address

# ── Rate-limit helpers ────────────────────────────────────────────────────────
# AlgoNode free tier: ~1 req/s on algod; add backoff on HTTP 429.
_CALL_DELAY = 0.5          # seconds between sequential API calls
_MAX_RETRIES = 5
_BACKOFF_BASE = 2          # exponential base (2 ** attempt seconds)

MIN_ACCOUNT_BALANCE = 100_000
DEFAULT_DEPOSIT = 1_000_000


def _retry_on_429(fn, *args, **kwargs):
    """Call fn(*args, **kwargs) retrying up to _MAX_RETRIES times on HTTP 429."""
    for attempt in range(_MAX_RETRIES):
        try:
            result = fn(*args, **kwargs)
            time.sleep(_CALL_DELAY)   # polite pause after every successful call
            return result
        except AlgodHTTPError as exc:
            if "429" in str(exc) or getattr(exc, "code", None) == 429:
                wait = _BACKOFF_BASE ** attempt
                print(f"   ⏳ Rate limited – retrying in {wait}s (attempt {attempt+1}/{_MAX_RETRIES})...")
                time.sleep(wait)
            else:
                raise
    raise RuntimeError("AlgoNode rate limit: max retries exceeded")


load_dotenv()

# ── Config ────────────────────────────────────────────────────────────────────
NETWORK = os.getenv("NETWORK", "testnet")

ALGOD_SERVERS = {
    "testnet":  ("https://testnet-api.algonode.network", "", ""),
    "localnet": ("http://localhost", 4001, "a" * 64),
}

ARTIFACTS = pathlib.Path(__file__).parent.parent / "contracts" / "artifacts"

# owner, heir as bytes; last_withdrawal as uint64
GLOBAL_SCHEMA = StateSchema(num_uints=1, num_byte_slices=2)
LOCAL_SCHEMA  = StateSchema(num_uints=0, num_byte_slices=0)


def load_settings() -> dict:
    """Read and validate deployment settings from the environment."""
    if NETWORK not in ALGOD_SERVERS:
        sys.exit(f"Unsupported network: {NETWORK}")

    raw_mnemonic = os.getenv("ALGO_MNEMONIC")
    if not raw_mnemonic:
        sys.exit(
            "❌  ALGO_MNEMONIC environment variable not set.\n"
            "    Export your 25-word mnemonic:\n"
            "    export ALGO_MNEMONIC=\"word1 word2 ... word25\""
        )

    heir = os.getenv("HEIRLOCK_INITIAL_HEIR", "")
    if is_zero_address(heir) or not encoding.is_valid_address(heir):
        sys.exit("❌  HEIRLOCK_INITIAL_HEIR must be a valid, non-zero Algorand address (HeirCannotBeZeroAddress)")

    try:
        deposit = int(os.getenv("HEIRLOCK_INITIAL_DEPOSIT", str(DEFAULT_DEPOSIT)))
    except ValueError:
        sys.exit("❌  HEIRLOCK_INITIAL_DEPOSIT must be an integer amount of microALGO")
    if deposit < 0:
        sys.exit("❌  HEIRLOCK_INITIAL_DEPOSIT cannot be negative")

    private_key = mnemonic.to_private_key(raw_mnemonic)
    return {
        "private_key": private_key,
        "address": account.address_from_private_key(private_key),
        "heir": heir,
        "deposit": deposit,
    }


def required_balance(deposit: int, current_min_balance: int, fee: int, extra_pages: int = 0) -> int:
    """microALGO the creator must hold to create, fund and still meet its own minimum.

    Creating the app raises the creator's minimum balance by 100_000 per
    program page plus 28_500 per uint and 50_000 per byte slice of global
    schema. The app account needs its own MIN_ACCOUNT_BALANCE on top of the
    deposit, and the create call and the funding payment each pay a fee.
    """
    app_min_balance = (
        100_000 * (1 + extra_pages)
        + 28_500 * GLOBAL_SCHEMA.num_uints
        + 50_000 * GLOBAL_SCHEMA.num_byte_slices
    )
    return current_min_balance + app_min_balance + deposit + MIN_ACCOUNT_BALANCE + 2 * fee


def build_algod():
    algod_server, algod_port, algod_token = ALGOD_SERVERS[NETWORK]
    url = algod_server if not algod_port else f"{algod_server}:{algod_port}"
    headers = {"User-Agent": "algosdk", "x-api-key": algod_token} if algod_token else {"User-Agent": "algosdk"}
    return algod_client_module.AlgodClient(algod_token, url, headers=headers)


def compile_program(algod, source: str) -> bytes:
    """Compile TEAL source and return raw bytes (rate-limit safe)."""
    response = _retry_on_429(algod.compile, source)
    return base64.b64decode(response["result"])


def main():
    settings = load_settings()
    address = settings["address"]
    signer = AccountTransactionSigner(settings["private_key"])

    try:
        approval_teal = (ARTIFACTS / "Heirlock.approval.teal").read_text()
        clear_teal    = (ARTIFACTS / "Heirlock.clear.teal").read_text()
        contract      = abi.Contract.from_json((ARTIFACTS / "Heirlock.abi.json").read_text())
    except FileNotFoundError:
        sys.exit("❌  Artifacts missing. Run: python scripts/compile.py")

    algod = build_algod()

    print(f"\n🚀 Deploying Heirlock to {NETWORK.upper()}...")
    print(f"   Owner    : {address}")
    print(f"   Heir     : {settings['heir']}")

    try:
        info = _retry_on_429(algod.account_info, address)
    except AlgodHTTPError as e:
        sys.exit(f"❌  Cannot reach Algorand node: {e}")
    print(f"   Balance  : {info.get('amount', 0) / 1_000_000:.4f} ALGO")

    # Compile TEAL
    print("   Compiling approval program...")
    approval_bytes = compile_program(algod, approval_teal)
    print("   Compiling clear program...")
    clear_bytes    = compile_program(algod, clear_teal)

    # Extra program pages: each page = 2048 bytes (max 3 extra pages)
    extra_pages = max(0, math.ceil(len(approval_bytes) / 2048) - 1)
    if extra_pages > 0:
        print(f"   Program size : {len(approval_bytes)} bytes — using {extra_pages} extra page(s)")

    sp = _retry_on_429(algod.suggested_params)

    # Check balance before create, so the app is never left unfunded
    needed = required_balance(
        settings["deposit"],
        current_min_balance=info.get("min-balance", MIN_ACCOUNT_BALANCE),
        fee=max(sp.min_fee, 1000),
        extra_pages=extra_pages,
    )
    if info.get("amount", 0) < needed:
        sys.exit(
            f"\n❌  Insufficient balance. Need at least {needed / 1_000_000:.4f} ALGO.\n"
            f"   Fund this address: {address}\n"
            "   Testnet dispenser: https://dispenser.testnet.aws.algodev.network\n"
        )

    atc = AtomicTransactionComposer()
    atc.add_method_call(
        app_id=0,
        method=contract.get_method_by_name("create"),
        sender=address,
        sp=sp,
        signer=signer,
        method_args=[settings["heir"]],
        on_complete=OnComplete.NoOpOC,
        approval_program=approval_bytes,
        clear_program=clear_bytes,
        global_schema=GLOBAL_SCHEMA,
        local_schema=LOCAL_SCHEMA,
        extra_pages=extra_pages,
    )
    print("   Sending create call...")
    created = atc.execute(algod, 8)
    txid = created.tx_ids[0]

    create_info = _retry_on_429(algod.pending_transaction_info, txid)
    app_id   = create_info["application-index"]
    app_addr = logic.get_application_address(app_id)
    for event in decode_logs(create_info):
        print(f"   Event    : {event}")

    # Initial deposit + minimum balance of the app account
    print(f"   Funding pool with {settings['deposit'] / 1_000_000:.4f} ALGO...")
    sp = _retry_on_429(algod.suggested_params)
    fund_txn = PaymentTxn(
        sender=address,
        sp=sp,
        receiver=app_addr,
        amt=settings["deposit"] + MIN_ACCOUNT_BALANCE,
    )
    fund_txid = _retry_on_429(algod.send_transaction, fund_txn.sign(settings["private_key"]))
    wait_for_confirmation(algod, fund_txid, wait_rounds=8)

    print("\n" + "═" * 60)
    print("  ✅ Contract deployed!")
    print(f"  📌 App ID       : {app_id}")
    print(f"  📦 App Address  : {app_addr}")
    print(f"  🔗 Create Tx    : {txid}")
    print(f"  💰 Deposit Tx   : {fund_txid}")
    print(f"  🌐 Explorer     : https://testnet.explorer.perawallet.app/application/{app_id}")
    print("═" * 60)
    print("\nNext steps:")
    print("  1. Withdraw (0 is fine) at least once every 30 days to keep the heir locked out")
    print("  2. Cover 2x min fee on withdraw calls: the payout is an inner transaction\n")

    out = ARTIFACTS
    out.mkdir(exist_ok=True)
    (out / "deployed.json").write_text(json.dumps({
        "network": NETWORK,
        "app_id": app_id,
        "app_address": app_addr,
        "deploy_txid": txid,
        "deposit_txid": fund_txid,
        "owner": address,
        "heir": settings["heir"],
        "initial_deposit": settings["deposit"],
    }, indent=2))
    print("  Saved to contracts/artifacts/deployed.json")

    return app_id, app_addr


if __name__ == "__main__":
    main()
