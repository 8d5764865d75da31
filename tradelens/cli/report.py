"""CLI report — prints a decision to the console."""

from tradelens.decision.models import DecisionResult


def print_decision(result: DecisionResult) -> str:
    """Format and print a decision.

    Args:
        result: The engine's ``DecisionResult``.

    Returns:
        The formatted string (also printed to stdout).
    """
    symbol = result.symbol or "N/A"
    quality = result.data_quality
    quality_str = f"{quality.confidence:.2f} ({'ok' if quality.is_valid else 'INSUFFICIENT'})"

    lines = [
        "──────────────── TradeLens Decision ───────────────",
        f"  Symbol:          {symbol}",
        f"  Timeframe:       {result.timeframe}",
        f"  As of:           {result.timestamp or 'N/A'}",
        f"  Verdict:         {result.verdict}",
        f"  Score:           {result.score:+.1f}",
        f"  Confidence:      {result.confidence * 100:.0f}%",
        f"  Data Quality:    {quality_str}",
    ]

    if result.levels is not None:
        lv = result.levels
        t1, t2, t3 = lv.targets
        lines += [
            f"  Entry:           {lv.entry_price:,.4f}",
            f"  Stop Loss:       {lv.stop_loss:,.4f}",
            f"  Targets:         {t1:,.4f} / {t2:,.4f} / {t3:,.4f}",
            f"  Risk/Reward:     {lv.risk_reward_ratio:.1f}",
        ]

    if result.reasons:
        lines.append("  Reasons:")
        lines += [f"    • {r}" for r in result.reasons]
    if result.risks:
        lines.append("  Risks:")
        lines += [f"    ! {r}" for r in result.risks]
    if result.wait_for:
        lines.append("  Wait For:")
        lines += [f"    [{w.priority}] {w.condition}: {w.description}" for w in result.wait_for]

    lines.append("──────────────────────────────────────────────────")
    output = "\n".join(lines)
    print(output)
    return output
