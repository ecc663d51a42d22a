"""Command-line client for the THub portal API.

Usage:
  thub alerts
  thub exams [--course-id N] [--search TEXT]
  thub events [--all]
  thub products [--all]
  thub verify-certificate THB-2024-12345
  thub installments 1800
  thub login someone@example.com [--password PW] [--remember-me]

Settings come from THUB_* environment variables (see thub_shared.settings).
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
import sys

from thub_api.resources import list_events, list_exams, list_products
from thub_shared.errors import ThubError, ValidationError
from thub_shared.formatting import format_currency, format_date, truncate_text

from thub_portal.app import Portal
from thub_portal.exam_selector import filter_exams
from thub_portal.installments import installment_options


async def cmd_alerts(portal: Portal, args: argparse.Namespace) -> int:
    alerts = await portal.alert_banner().visible_alerts()
    if not alerts:
        print("No active alerts.")
        return 0
    for alert in alerts:
        print(f"[{alert.type}] {alert.title}: {alert.content}")
    return 0


async def cmd_exams(portal: Portal, args: argparse.Namespace) -> int:
    if args.course_id is None:
        exams = filter_exams(await list_exams(portal.api), args.search or "")
    else:
        selector = portal.exam_selector(args.course_id, show_only_course_exams=True)
        await selector.load()
        exams = selector.search(args.search or "")
    if not exams:
        print("No exams found.")
        return 0
    print(f"{'ID':<6} {'Course':<8} {'Type':<12} Title")
    print("-" * 60)
    for exam in exams:
        print(f"{exam.id:<6} {exam.course_id:<8} {exam.type:<12} {exam.title}")
    return 0


async def cmd_events(portal: Portal, args: argparse.Namespace) -> int:
    events = await list_events(portal.api, upcoming=not args.all, active=not args.all)
    if not events:
        print("No events found.")
        return 0
    for event in events:
        when = format_date(event.date) if event.date else "TBA"
        print(f"{when:<14} {event.title}")
    return 0


async def cmd_products(portal: Portal, args: argparse.Namespace) -> int:
    products = await list_products(portal.api, active=not args.all)
    if not products:
        print("No products found.")
        return 0
    for product in products:
        price = format_currency(product.price) if product.price is not None else "-"
        print(f"{price:>12}  {product.name}  {truncate_text(product.description or '', 50)}")
    return 0


async def cmd_verify_certificate(portal: Portal, args: argparse.Namespace) -> int:
    result = await portal.certificate_verifier().verify(args.certificate_id)
    notification = portal.notifications.latest
    if notification is not None:
        print(f"{notification.title}: {notification.description}")
    if result is None or not result.verified:
        return 1
    certificate = result.certificate
    if certificate is not None:
        print(f"  Student: {certificate.student_name or 'N/A'}")
        print(f"  Course:  {certificate.course_name or 'N/A'}")
        if certificate.issue_date:
            print(f"  Issued:  {format_date(certificate.issue_date)}")
    return 0


async def cmd_installments(portal: Portal, args: argparse.Namespace) -> int:
    print(f"Total course price: {format_currency(args.total)}")
    for plan in installment_options(args.total):
        amounts = ", ".join(format_currency(a) for a in plan.amounts)
        print(f"  {plan.label:<10} {plan.monthly_amount}/month  ({amounts})")
    return 0


async def cmd_login(portal: Portal, args: argparse.Namespace) -> int:
    password = args.password or getpass.getpass("Password: ")
    result = await portal.auth.login(args.email, password, remember_me=args.remember_me)
    print(result.message)
    if result.success and portal.auth.requires_verification:
        print("Check your email for the verification code.")
    return 0 if result.success else 1


COMMANDS = {
    "alerts": cmd_alerts,
    "exams": cmd_exams,
    "events": cmd_events,
    "products": cmd_products,
    "verify-certificate": cmd_verify_certificate,
    "installments": cmd_installments,
    "login": cmd_login,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="thub", description="THub portal API client")
    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("alerts", help="Show active, undismissed alerts")

    exams_p = subparsers.add_parser("exams", help="List exams")
    exams_p.add_argument("--course-id", type=int, help="Only this course's exams")
    exams_p.add_argument("--search", help="Filter by title or description")

    events_p = subparsers.add_parser("events", help="List upcoming events")
    events_p.add_argument("--all", action="store_true", help="Include past and inactive events")

    products_p = subparsers.add_parser("products", help="List products")
    products_p.add_argument("--all", action="store_true", help="Include inactive products")

    verify_p = subparsers.add_parser("verify-certificate", help="Verify a certificate id")
    verify_p.add_argument("certificate_id", help="Certificate id, e.g. THB-2024-12345")

    installments_p = subparsers.add_parser("installments", help="Show installment plans")
    installments_p.add_argument("total", type=float, help="Total course price")

    login_p = subparsers.add_parser("login", help="Log in")
    login_p.add_argument("email")
    login_p.add_argument("--password", help="Prompted for when omitted")
    login_p.add_argument("--remember-me", action="store_true")

    return parser


async def run(args: argparse.Namespace, portal: Portal | None = None) -> int:
    """Run one parsed command. A portal passed in is left open for the caller."""
    command = COMMANDS[args.command]
    if portal is not None:
        return await command(portal, args)
    async with Portal() as owned:
        return await command(owned, args)


def main(argv: list[str] | None = None) -> None:
    logging.basicConfig(level=logging.INFO)
    args = build_parser().parse_args(argv)
    try:
        code = asyncio.run(run(args))
    except ValidationError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        code = 2
    except ThubError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        code = 1
    if code:
        sys.exit(code)


if __name__ == "__main__":
    main()
