from pathlib import Path

import pytest

from h41_extract.engine.settings import load_extraction_config

ROOT = Path(__file__).resolve().parents[1]


def body_rows(rows):
    return "\n".join("<tr>" + "".join(f"<td>{c}</td>" for c in row) + "</tr>" for row in rows)


TABLE1_HEADER = """
<tr>
  <th rowspan="2">Reserve Bank credit, related items, and reserve balances of depository institutions at Federal Reserve Banks</th>
  <th colspan="3">Averages of daily figures</th>
  <th rowspan="2">Wednesday<br>Jan 7, 2026</th>
</tr>
<tr>
  <th>Week ended<br>Jan 7, 2026</th>
  <th>Change from week ended<br>Dec 31, 2025</th>
  <th>Change from week ended<br>Jan 8, 2025</th>
</tr>
"""

TABLE1_ROWS = [
    ["Reserve Bank credit", "6,500,000", "+10,000", "-900,000", "6,510,000"],
    ["Securities held outright", "6,200,000", "-5,000", "-800,000", "6,195,000"],
    ["U.S. Treasury securities<sup>1</sup>", "4,200,000", "+2,000", "-300,000", "4,201,000"],
    ["Bills<sup>2</sup>", "195,000", "0", "+5,000", "195,000"],
    ["Notes and bonds, nominal", "3,600,000", "+2,000", "-250,000", "3,601,000"],
    ["Notes and bonds, inflation-indexed", "300,000", "0", "-40,000", "300,000"],
    ["Inflation compensation", "105,000", "+100", "-15,000", "105,000"],
    ["Federal agency debt securities", "2,347", "0", "0", "2,347"],
    ["Mortgage-backed securities", "2,000,000", "-7,000", "-500,000", "1,994,000"],
    ["Repurchase agreements", "5,000", "+5,000", "+4,990", "0"],
    ["Loans", "8,000", "-200", "-2,000", "7,900"],
    ["Primary credit", "3,000", "-100", "-500", "2,950"],
    ["Secondary credit", "0", "0", "0", "0"],
    ["Seasonal credit", "100", "0", "-50", "100"],
    ["Bank Term Funding Program", "4,900", "-100", "-1,450", "4,850"],
    ["Central bank liquidity swaps", "200", "0", "-100", "200"],
    ["Gold stock", "11,041", "0", "0", "11,041"],
    ["Special drawing rights certificate account", "15,200", "0", "0", "15,200"],
    ["Treasury currency outstanding", "52,000", "+14", "+700", "52,000"],
    ["Total factors supplying reserve funds", "6,578,241", "+10,014", "-899,300", "6,588,241"],
    ["Currency in circulation", "2,400,000", "-3,000", "+60,000", "2,399,000"],
    ["Reverse repurchase agreements", "300,000", "+20,000", "-200,000", "310,000"],
    ["Foreign official and international accounts", "290,000", "+19,000", "-20,000", "300,000"],
    ["Others", "10,000", "+1,000", "-180,000", "10,000"],
    ["Treasury cash holdings", "300", "0", "-100", "300"],
    ["Deposits with F.R. Banks, other than reserve balances", "900,000", "+30,000", "+60,000", "905,000"],
    ["U.S. Treasury, General Account", "800,000", "+28,000", "+55,000", "805,000"],
    ["Other", "100,000", "+2,000", "+5,000", "100,000"],
    ["Other liabilities and capital", "100,000", "0", "+1,000", "100,000"],
    ["Total factors, other than reserve balances, absorbing reserve funds", "3,700,300", "+47,000", "-79,200", "3,714,300"],
    ["Reserve balances with Federal Reserve Banks", "2,877,945", "-36,986", "-820,100", "2,873,941"],
]

MEMO_ROWS = [
    ["Securities held in custody for foreign official and international accounts", "3,000,000", "+1,000", "-10,000", "3,001,000"],
    ["Marketable U.S. Treasury securities<sup>1</sup>", "2,800,000", "+1,000", "-9,000", "2,801,000"],
    ["Federal agency debt and mortgage-backed securities<sup>2</sup>", "200,000", "0", "-1,000", "200,000"],
    ["Other securities", "100", "0", "0", "100"],
    ["Securities lent to dealers", "50,000", "+2,500", "+10,000", "51,000"],
    ["Overnight facility<sup>3</sup>", "50,000", "+2,500", "+10,000", "51,000"],
    ["U.S. Treasury securities", "50,000", "+2,500", "+10,000", "51,000"],
    ["Term facility", "0", "0", "0", "0"],
]

MATURITY_HEADER = """
<tr><th>Remaining maturity</th><th>Within 15 days</th><th>16 days to 90 days</th><th>91 days to 1 year</th>
<th>Over 1 year to 5 years</th><th>Over 5 years to 10 years</th><th>Over 10 years</th><th>All</th></tr>
"""

MATURITY_ROWS = [
    ["Loans", "3,000", "5,000", "0", "0", "0", "0", "8,000"],
    ["U.S. Treasury securities<sup>1</sup>", "", "", "", "", "", "", ""],
    ["Holdings", "100,000", "300,000", "700,000", "1,500,000", "800,000", "800,000", "4,200,000"],
    ["Weekly changes", "+1,000", "-1,000", "+2,000", "0", "0", "0", "+2,000"],
    ["Federal agency debt securities<sup>2</sup>", "", "", "", "", "", "", ""],
    ["Holdings", "0", "0", "2,347", "0", "0", "0", "2,347"],
    ["Weekly changes", "0", "0", "0", "0", "0", "0", "0"],
    ["Mortgage-backed securities<sup>3</sup>", "", "", "", "", "", "", ""],
    ["Holdings", "0", "0", "0", "10", "1,000", "1,998,990", "2,000,000"],
    ["Weekly changes", "0", "0", "0", "0", "-10", "-6,990", "-7,000"],
    ["Repurchase agreements<sup>4</sup>", "5,000", "0", "0", "0", "0", "0", "5,000"],
]

STATEMENT_HEADER = """
<tr>
  <th rowspan="2">Assets, liabilities, and capital</th>
  <th rowspan="2">Eliminations from consolidation</th>
  <th rowspan="2">Wednesday<br>Jan 7, 2026</th>
  <th colspan="2">Change since</th>
</tr>
<tr><th>Wednesday<br>Dec 31, 2025</th><th>Wednesday<br>Jan 8, 2025</th></tr>
"""

STATEMENT_ROWS = [
    ["Assets", "", "", "", ""],
    ["Gold certificate account", "", "11,037", "0", "0"],
    ["Special drawing rights certificate account", "", "15,200", "0", "0"],
    ["Coin", "", "1,200", "+10", "-150"],
    ["Securities, unamortized premiums and discounts, repurchase agreements, and loans", "", "6,590,000", "-4,000", "-950,000"],
    ["Securities held outright", "", "6,195,000", "-6,000", "-805,000"],
    ["Repurchase agreements", "", "0", "-5,000", "0"],
    ["Loans", "", "7,900", "-300", "-2,100"],
    ["Central bank liquidity swaps", "", "200", "0", "-100"],
    ["Other assets", "", "40,000", "+500", "-2,000"],
    ["Total assets", "(5)", "6,700,000", "-3,500", "-951,000"],
    ["Liabilities", "", "", "", ""],
    ["Federal Reserve notes, net of F.R. Bank holdings", "", "2,350,000", "-2,500", "+58,000"],
    ["Reverse repurchase agreements", "", "310,000", "+20,000", "-200,000"],
    ["Deposits", "", "3,800,000", "-25,000", "-700,000"],
    ["Term deposits held by depository institutions", "", "0", "0", "0"],
    ["Other deposits held by depository institutions", "", "2,873,941", "-40,000", "-820,000"],
    ["U.S. Treasury, General Account", "", "805,000", "+14,000", "+60,000"],
    ["Total liabilities", "", "6,660,000", "-3,500", "-950,000"],
]


RESERVE_BANKS = [
    "Boston", "New York", "Philadelphia", "Cleveland", "Richmond", "Atlanta",
    "Chicago", "St. Louis", "Minneapolis", "Kansas City", "Dallas", "San Francisco",
]

BANK_HEADER = "<tr><th>Item</th><th>Total</th>" + "".join(f"<th>{b}</th>" for b in RESERVE_BANKS) + "</tr>"

BANK_GOLD = [400, 3900, 400, 500, 800, 1500, 1000, 300, 200, 300, 700, 1037]
BANK_SDR = [500, 5200, 600, 700, 1000, 1900, 1300, 500, 300, 500, 1000, 1700]
BANK_SECURITIES = [
    250000, 2600000, 230000, 280000, 420000, 600000, 480000, 170000, 110000, 170000, 380000, 505000,
]
BANK_LOANS = [500, 3000, 400, 300, 600, 700, 900, 200, 100, 300, 400, 500]
BANK_RRP = [10000, 200000, 5000, 6000, 9000, 20000, 15000, 4000, 2000, 3000, 11000, 25000]
BANK_NOTES_OUT = [90000, 900000, 80000, 100000, 150000, 250000, 170000, 60000, 40000, 60000, 140000, 350000]
BANK_NOTES_HELD = [1000] * 12
BANK_CAPITAL = [1500, 12000, 1300, 1600, 2400, 3000, 2200, 900, 700, 900, 2100, 4400]


def _zip(*columns):
    return [sum(vals) for vals in zip(*columns)]


def bank_row(label, per_bank):
    return [label, f"{sum(per_bank):,}"] + [f"{v:,}" for v in per_bank]


BANK_COLLATERALIZED = [o - h for o, h in zip(BANK_NOTES_OUT, BANK_NOTES_HELD)]
BANK_LIABILITIES = _zip(BANK_SECURITIES, BANK_GOLD, BANK_SDR, BANK_LOANS)
BANK_DEPOSITS = [t - n - r for t, n, r in zip(BANK_LIABILITIES, BANK_COLLATERALIZED, BANK_RRP)]

REGIONAL_ROWS = [
    bank_row("Gold certificate account", BANK_GOLD),
    bank_row("Special drawing rights certificate account", BANK_SDR),
    bank_row("Securities held outright<sup>1</sup>", BANK_SECURITIES),
    bank_row("Repurchase agreements", [0] * 12),
    bank_row("Loans", BANK_LOANS),
    bank_row("Total assets", _zip(BANK_SECURITIES, BANK_GOLD, BANK_SDR, BANK_LOANS, BANK_CAPITAL, BANK_CAPITAL)),
    bank_row("Federal Reserve notes, net of F.R. Bank holdings", BANK_COLLATERALIZED),
    bank_row("Reverse repurchase agreements", BANK_RRP),
    bank_row("Deposits", BANK_DEPOSITS),
    bank_row("Total liabilities", BANK_LIABILITIES),
    bank_row("Capital paid in", BANK_CAPITAL),
    bank_row("Surplus", BANK_CAPITAL),
]

FR_NOTES_ROWS = [
    bank_row("Federal Reserve notes outstanding", BANK_NOTES_OUT),
    bank_row("Less: Notes held by F.R. Banks not subject to collateralization", BANK_NOTES_HELD),
    bank_row("Federal Reserve notes to be collateralized", BANK_COLLATERALIZED),
    bank_row("Collateral held against Federal Reserve notes", BANK_COLLATERALIZED),
    bank_row("Gold certificate account", BANK_GOLD),
    bank_row("Special drawing rights certificate account", BANK_SDR),
    bank_row(
        "U.S. Treasury, agency debt, and mortgage-backed securities pledged<sup>1</sup>",
        [c - g - s for c, g, s in zip(BANK_COLLATERALIZED, BANK_GOLD, BANK_SDR)],
    ),
    bank_row("Other assets pledged", [0] * 12),
]


def build_release_html(
    *,
    factors=True,
    memo=True,
    maturity=True,
    statement=True,
    regional=True,
    fr_notes=True,
    maturity_header=MATURITY_HEADER,
    maturity_rows=MATURITY_ROWS,
):
    parts = [
        "<html><head><title>FRB: H.4.1 Release</title></head><body>",
        "<h2>H.4.1 Factors Affecting Reserve Balances</h2>",
        "<p>Release Date: January 8, 2026</p>",
    ]
    if factors:
        parts.append(
            '<div class="section"><h3>1. Factors Affecting Reserve Balances of Depository Institutions</h3>'
            '<p class="units">Millions of dollars</p>'
            f"<table>{TABLE1_HEADER}{body_rows(TABLE1_ROWS)}</table></div>"
        )
    if memo:
        parts.append(
            '<div class="section"><h3>1A. Memorandum Items</h3>'
            "<table><tr><th></th><th>Week ended<br>Jan 7, 2026</th><th>Change from week ended<br>Dec 31, 2025</th>"
            "<th>Change from week ended<br>Jan 8, 2025</th><th>Wednesday<br>Jan 7, 2026</th></tr>"
            f"{body_rows(MEMO_ROWS)}</table></div>"
        )
    if maturity:
        parts.append(
            '<div class="section"><h3>2. Maturity Distribution of Securities, Loans, and Selected Other Assets and Liabilities</h3>'
            f"<table>{maturity_header}{body_rows(maturity_rows)}</table></div>"
        )
    if statement:
        parts.append(
            '<div class="section"><h3>5. Consolidated Statement of Condition of All Federal Reserve Banks</h3>'
            f"<table>{STATEMENT_HEADER}{body_rows(STATEMENT_ROWS)}</table></div>"
        )
    if regional:
        parts.append(
            '<div class="section"><h3>6. Statement of Condition of Each Federal Reserve Bank, Jan 7, 2026</h3>'
            f"<table>{BANK_HEADER}{body_rows(REGIONAL_ROWS)}</table></div>"
        )
    if fr_notes:
        parts.append(
            '<div class="section"><h3>7. Collateral Held against Federal Reserve Notes: Federal Reserve Agents\' Accounts</h3>'
            f"<table>{BANK_HEADER}{body_rows(FR_NOTES_ROWS)}</table></div>"
        )
    parts.append("</body></html>")
    return "\n".join(parts)


@pytest.fixture
def release_html():
    return build_release_html()


@pytest.fixture
def default_config():
    return load_extraction_config(ROOT / "configs" / "h41_extraction.yaml")
