"""
aspec CLI — guardrailed procurement and marketing agents.

Commands:
    aspec analyze     Run one agent pipeline against a supplier or influencer
    aspec discover    Buy the premium influencer listing via x402
    aspec fetch       Fetch any resource through the pay-to-unlock protocol
    aspec catalog     List built-in suppliers, influencers and priced resources
    aspec demo        Run a full in-process demo

Agent state lives for one process, so every command starts from a fresh budget.
"""

from __future__ import annotations

import json
import logging
import sys
from pathlib import Path
from typing import Optional

import click
import httpx

from . import __version__, catalog
from .config import load_config
from .errors import AspecError, PipelineError
from .events import Event
from .resource import ReceiptPolicy, ResourceResponse, default_pricing
from .runtime import Runtime, build_runtime
from .settlement import MockSettlement
from .subjects import InfluencerData, SupplierPriceData

EVENT_ICONS = {
    "analysis": "🔎",
    "evaluation": "🔎",
    "discovery": "🛰 ",
    "decision": "🧠",
    "execution": "✅",
    "payment": "✅",
    "campaign": "📣",
    "error": "❌",
}


def _echo_event(event: Event) -> None:
    icon = EVENT_ICONS.get(event.type, "•")
    ts = event.timestamp[11:19]
    click.echo(f"  {ts} {icon} [{event.type}] {event.thought or event.error or ''}")
    tx = event.payload.transaction
    if tx is not None and getattr(tx, "explorer_link", None):
        click.echo(f"           {tx.explorer_link}")


def _echo_response(response: ResourceResponse) -> None:
    if response.success:
        label = "reused receipt" if response.reused_receipt else "unlocked"
        click.echo(f"✅ Resource {label}")
        if response.receipt:
            click.echo(f"   Paid:      ${response.receipt.amount_due:g}")
            click.echo(f"   Reference: {response.receipt.reference}")
        click.echo(json.dumps(response.payload, indent=2))
        return
    click.echo(f"❌ {response.error}")
    if response.payment_requirement:
        req = response.payment_requirement
        click.echo(f"   Amount due: ${req.amount_due:g} {req.currency} on {req.network}")
        click.echo(f"   Pay to:     {req.payee_address}")
        click.echo(f"   For:        {req.description}")


def _echo_balance(runtime: Runtime) -> None:
    try:
        balance = runtime.wallet_balance()
    except (AspecError, httpx.HTTPError) as exc:
        click.echo(f"⚠️  Wallet balance unavailable: {exc}")
        return
    if balance is None:
        click.echo("Wallet balance: unknown")
    else:
        click.echo(f"Wallet balance: ${balance:g}")


def _runtime(**kwargs) -> Runtime:
    try:
        return build_runtime(load_config(), **kwargs)
    except (AspecError, ValueError) as exc:
        click.echo(f"❌ Configuration error: {exc}", err=True)
        sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--verbose", "-v", is_flag=True, help="Log pipeline internals to stderr")
def main(verbose: bool):
    """Guardrailed decision-to-settlement agents."""
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


@main.command()
@click.argument("agent", type=click.Choice(["procurement", "marketing"]))
@click.option("--subject", default=None, help="Supplier name or influencer handle from the catalog")
@click.option(
    "--data",
    "data_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="JSON file describing the supplier or influencer",
)
def analyze(agent: str, subject: Optional[str], data_file: Optional[Path]):
    """Run one pipeline invocation and print its events."""
    runtime = _runtime()

    try:
        if data_file is not None:
            raw = json.loads(data_file.read_text())
            target = (
                SupplierPriceData.from_dict(raw) if agent == "procurement"
                else InfluencerData.from_dict(raw)
            )
        elif agent == "procurement":
            target = catalog.find_supplier(subject) if subject else catalog.SUPPLIERS[0]
        else:
            target = catalog.find_influencer(subject) if subject else catalog.INFLUENCERS[0]
    except (KeyError, ValueError) as exc:
        click.echo(f"❌ {exc}", err=True)
        sys.exit(1)

    pipeline = runtime.procurement if agent == "procurement" else runtime.marketing
    pipeline.subscribe(_echo_event)

    try:
        result = pipeline.run(target)
    except PipelineError as exc:
        click.echo(f"❌ {exc}", err=True)
        sys.exit(1)

    d = result.decision
    click.echo(f"\nDecision: {d.action.value} ({d.confidence:g}% confidence)")
    if result.transaction is not None:
        status = "settled" if result.transaction.success else "failed"
        click.echo(f"Transaction {status}: ${result.clamp.amount:g}" if result.clamp else status)
    snap = pipeline.guardrail_snapshot()
    click.echo(f"Spent today: ${snap.daily_spent:g} of ${snap.daily_limit:g}")


@main.command()
@click.option("--auto-pay-limit", type=float, default=10.0, show_default=True, help="Max USDC to pay without approval")
@click.option("--approve", is_flag=True, help="Approve payment above the auto-pay limit")
def discover(auto_pay_limit: float, approve: bool):
    """Buy the premium influencer listing through the pay-to-unlock protocol."""
    runtime = _runtime()
    runtime.marketing.subscribe(_echo_event)
    response = runtime.marketing.discover_influencers(
        auto_pay_limit=auto_pay_limit,
        already_approved=approve,
    )
    _echo_response(response)
    if not response.success:
        sys.exit(1)


@main.command()
@click.argument("resource_id")
@click.option("--auto-pay-limit", type=float, default=10.0, show_default=True)
@click.option("--approve", is_flag=True, help="Approve payment above the auto-pay limit")
@click.option("--reuse-receipts", is_flag=True, help="Let an unexpired receipt unlock the resource again")
@click.option("--times", type=int, default=1, show_default=True, help="Fetch the resource this many times")
def fetch(resource_id: str, auto_pay_limit: float, approve: bool, reuse_receipts: bool, times: int):
    """Fetch a resource, paying for it when it is priced."""
    policy = ReceiptPolicy.REUSE_UNEXPIRED if reuse_receipts else ReceiptPolicy.PAY_PER_ACCESS
    runtime = _runtime(receipt_policy=policy)

    for _ in range(max(1, times)):
        response = runtime.resources.fetch_resource(
            resource_id,
            auto_pay_limit=auto_pay_limit,
            already_approved=approve,
        )
        _echo_response(response)
        if not response.success:
            sys.exit(1)
    _echo_balance(runtime)


@main.command("catalog")
def catalog_cmd():
    """List built-in demo data."""
    click.echo("Suppliers:")
    for s in catalog.SUPPLIERS:
        click.echo(f"  {s.supplier:<20} {s.product:<36} ${s.current_price:g} (target ${s.target_price:g})")
    click.echo("\nInfluencers:")
    for i in catalog.INFLUENCERS:
        click.echo(
            f"  @{i.handle:<18} {i.platform:<10} {i.followers:>8,} followers "
            f"{i.engagement_rate:g}% ${i.requested_rate:g}/post"
        )
    click.echo("\nPriced resources:")
    for pattern, tier in default_pricing().rules:
        click.echo(f"  {pattern:<22} ${tier.amount_due:g} {tier.currency}  {tier.description}")


@main.command()
@click.option("--delay", type=float, default=0.0, help="Artificial settlement delay in seconds")
def demo(delay: float):
    """Run a full demo: discovery, procurement, marketing, budget exhaustion."""
    config = load_config()
    settlement = MockSettlement(
        balance=config.settlement.mock_balance_usd,
        delay_seconds=delay,
        explorer_url=config.settlement.explorer_url,
    )
    runtime = build_runtime(config, settlement=settlement)
    runtime.procurement.subscribe(_echo_event)
    runtime.marketing.subscribe(_echo_event)

    click.echo("🎬 aspec demo — guardrailed agent spending")
    click.echo("=" * 50)
    click.echo(f"   Wallet: ${settlement.balance:,.2f} USDC (mock)")

    click.echo("\n1️⃣  Discovering influencers (x402, $5 listing, $1 auto-pay limit)...")
    response = runtime.marketing.discover_influencers(auto_pay_limit=1.0)
    click.echo(f"   success={response.success}")

    click.echo("\n2️⃣  Retrying discovery with a $10 auto-pay limit...")
    response = runtime.marketing.discover_influencers(auto_pay_limit=10.0)
    click.echo(f"   success={response.success}")

    click.echo("\n3️⃣  Procurement run for every supplier...")
    for supplier in catalog.SUPPLIERS:
        runtime.procurement.analyze_and_execute(supplier)

    click.echo("\n4️⃣  Marketing run for every influencer...")
    for influencer in catalog.INFLUENCERS:
        runtime.marketing.evaluate_and_engage(influencer)

    click.echo("\n5️⃣  Draining the procurement budget with repeated buys...")
    runtime.procurement.reset_daily_spending()
    runtime.procurement.update_guardrails(daily_limit=2000.0, max_per_transaction=500.0)
    big = SupplierPriceData(
        supplier="BulkFabrics",
        product="Canvas Rolls (50 units)",
        current_price=9.0,
        target_price=12.0,
        historical_prices=(11.0, 10.0, 9.5),
        supplier_wallet="0xSUPPLIER_BULK_WALLET",
    )
    for _ in range(5):
        runtime.procurement.analyze_and_execute(big)

    click.echo("\n6️⃣  Status...")
    status = runtime.status()
    for kind, state in status["agents"].items():
        click.echo(
            f"   {kind:<12} spent ${state['daily_spent']:g} of ${state['daily_limit']:g}"
            f" | events {state['event_count']}"
        )
    if runtime.marketing.active_influencers():
        click.echo(f"   Active influencers: {', '.join(runtime.marketing.active_influencers())}")
    click.echo(f"   Wallet: ${settlement.balance:,.2f} USDC")

    click.echo("\n" + "=" * 50)
    click.echo("🎉 Demo complete! Decide → Clamp → Settle → Audit")


if __name__ == "__main__":
    main()
