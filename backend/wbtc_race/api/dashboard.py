"""
HTML dashboard for the wrapped-BTC race
Renders a snapshot with a client-side catch-up calculator
"""
from jinja2 import Environment, BaseLoader, select_autoescape

from wbtc_race.core.data_models import Snapshot
from wbtc_race.config.constants import DEFAULT_STAKING_APY, FALLBACK_SOL_BTC_PRICE
from wbtc_race.utils.helpers import format_number, parse_decimal


DASHBOARD_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="UTF-8">
  <meta name="viewport" content="width=device-width, initial-scale=1.0">
  <title>Wrapped BTC Race: Ethereum vs Solana</title>
  <script src="https://cdn.tailwindcss.com"></script>
  <style>
    .progress-bar { height: 1.5rem; border-radius: 0.25rem; overflow: hidden; display: flex; }
    .progress-eth { background-color: #60a5fa; }
    .progress-sol { background-color: #34d399; }
  </style>
</head>
<body class="bg-gray-100 text-gray-900 flex items-center justify-center min-h-screen">
  <main class="bg-white rounded-lg shadow-md p-6 w-full max-w-md">
    <header class="flex justify-between items-center mb-4">
      <h1 class="text-xl font-bold text-gray-800" role="heading" aria-level="1">Wrapped BTC Race</h1>
      <button id="refresh-btn" class="bg-blue-600 hover:bg-blue-700 text-white text-sm font-semibold py-1 px-3 rounded" aria-label="Refresh data">
        Refresh
      </button>
    </header>

    <section class="mb-6" aria-labelledby="race-heading">
      <h2 id="race-heading" class="text-lg font-semibold text-gray-700 mb-2">Ethereum vs Solana</h2>
      <div class="progress-bar" role="progressbar" aria-label="Wrapped BTC distribution">
        <div class="progress-eth" style="width: {{ eth_percent }}%;" aria-valuenow="{{ eth_percent }}" aria-valuemin="0" aria-valuemax="100"></div>
        <div class="progress-sol" style="width: {{ sol_percent }}%;" aria-valuenow="{{ sol_percent }}" aria-valuemin="0" aria-valuemax="100"></div>
      </div>
      <div class="flex justify-between text-sm text-gray-600 mt-2">
        <span>Ethereum: {{ eth_display }} BTC ({{ eth_percent }}%)</span>
        <span>Solana: {{ sol_display }} BTC ({{ sol_percent }}%)</span>
      </div>
      <p class="text-xs text-gray-500 mt-1">Currently minted BTC: {{ minted_btc }}</p>
      <p class="text-xs text-gray-500 mt-1">Last updated: {{ last_updated }}</p>
    </section>

    <section aria-labelledby="calc-heading">
      <h2 id="calc-heading" class="text-lg font-semibold text-gray-700 mb-2">Time to Catch Up</h2>
      <div class="mb-4">
        <label for="mint-rate" class="block text-sm font-medium text-gray-600">Solana Daily Mint Rate (BTC/day):</label>
        <input type="number" id="mint-rate" step="0.01" min="0" value="100"
          class="mt-1 w-full border border-gray-300 rounded-md p-2 text-sm focus:ring-blue-500 focus:border-blue-500"
          aria-describedby="mint-rate-desc">
        <p id="mint-rate-desc" class="text-xs text-gray-500 mt-1">Enter how much BTC Solana mints per day (excluding staking).</p>
      </div>
      <div class="mb-4">
        <label for="staked-sol" class="block text-sm font-medium text-gray-600">Staked SOL (SOL):</label>
        <input type="number" id="staked-sol" step="0.01" min="0" value="100000"
          class="mt-1 w-full border border-gray-300 rounded-md p-2 text-sm focus:ring-blue-500 focus:border-blue-500"
          aria-describedby="staked-sol-desc">
        <p id="staked-sol-desc" class="text-xs text-gray-500 mt-1">Enter amount of SOL staked ({{ apy_percent }}% APY, rewards swapped to BTC).</p>
      </div>
      <div id="result" class="text-sm text-gray-600" aria-live="polite">
        <p>Calculating...</p>
      </div>
    </section>
  </main>

  <script>
    const fmt = (value, digits) => value.toLocaleString('en-US', { maximumFractionDigits: digits });

    function calculateDays() {
      const ethTotal = {{ eth_total | tojson }};
      const solTotal = {{ sol_total | tojson }};
      const solBtcPrice = {{ sol_btc_price | tojson }};
      const apy = {{ apy | tojson }};
      const mintRate = parseFloat(document.getElementById('mint-rate').value) || 0;
      const stakedSol = parseFloat(document.getElementById('staked-sol').value) || 0;
      const resultDiv = document.getElementById('result');

      if (mintRate < 0 || stakedSol < 0) {
        resultDiv.innerHTML = '<p class="text-red-600">Please enter non-negative values.</p>';
        return;
      }

      const dailyYield = apy / 365;
      const dailySolRewards = stakedSol * dailyYield;
      const stakingBtcPerDay = dailySolRewards * solBtcPrice;
      const totalBtcPerDay = mintRate + stakingBtcPerDay;

      if (solTotal >= ethTotal) {
        resultDiv.innerHTML = '<p class="text-green-600">Solana has already caught up or surpassed Ethereum!</p>';
        return;
      }
      if (totalBtcPerDay <= 0) {
        resultDiv.innerHTML = '<p class="text-red-600">Total daily BTC growth must be positive.</p>';
        return;
      }

      const days = Math.ceil((ethTotal - solTotal) / totalBtcPerDay);
      const requiredSol = (mintRate * 365) / (dailyYield * solBtcPrice * 365);

      resultDiv.innerHTML = `
        <p>Daily SOL rewards: <span class="font-bold">${fmt(dailySolRewards, 2)} SOL</span> (${fmt(stakingBtcPerDay, 6)} BTC)</p>
        <p>Total daily BTC growth: <span class="font-bold">${fmt(totalBtcPerDay, 6)} BTC</span></p>
        <p>Solana needs approximately <span class="font-bold">${fmt(days, 0)} days</span> to match Ethereum's ${fmt(ethTotal, 2)} BTC.</p>
        <p>To achieve ${fmt(mintRate, 2)} BTC/day from staking alone in 1 year, stake <span class="font-bold">${fmt(requiredSol, 0)} SOL</span>.</p>
        <p class="text-xs text-gray-500 mt-1">Assumes ${fmt(apy * 100, 2)}% APY, SOL/BTC price of ${fmt(solBtcPrice, 6)}, and static Ethereum supply.</p>
      `;
    }

    calculateDays();
    document.getElementById('mint-rate').addEventListener('input', calculateDays);
    document.getElementById('staked-sol').addEventListener('input', calculateDays);
    document.getElementById('refresh-btn').addEventListener('click', () => window.location.reload());
  </script>
</body>
</html>
"""

_environment = Environment(loader=BaseLoader(), autoescape=select_autoescape(default_for_string=True))
_template = _environment.from_string(DASHBOARD_TEMPLATE)


def race_percentages(ethereum_total: float, solana_total: float) -> tuple[str, str]:
    """Share of each chain in the combined supply, one decimal place; 50/50 when empty"""
    total = ethereum_total + solana_total
    if total <= 0:
        return "50", "50"
    return f"{ethereum_total / total * 100:.1f}", f"{solana_total / total * 100:.1f}"


def render_dashboard(snapshot: Snapshot) -> str:
    """Render the HTML dashboard for a snapshot"""
    eth_total = float(parse_decimal(snapshot.ethereum_total))
    sol_total = float(parse_decimal(snapshot.solana_total))
    eth_percent, sol_percent = race_percentages(eth_total, sol_total)

    return _template.render(
        eth_total=eth_total,
        sol_total=sol_total,
        eth_percent=eth_percent,
        sol_percent=sol_percent,
        eth_display=format_number(eth_total, 2),
        sol_display=format_number(sol_total, 2),
        minted_btc=snapshot.reference_btc_supply,
        last_updated=snapshot.generated_at.strftime("%Y-%m-%d %H:%M:%S UTC"),
        sol_btc_price=snapshot.price_quote or FALLBACK_SOL_BTC_PRICE,
        apy=DEFAULT_STAKING_APY,
        apy_percent=format_number(DEFAULT_STAKING_APY * 100, 2)
    )
