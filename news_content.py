"""
news_content.py

Narrative content tables.  Pure data: the NewsEmitter and BasicNewsGenerator
take these as constructor arguments, so a caller can swap in its own.

Phenomenon templates are keyed "<kind>.<template>" and use str.format
placeholders: {STOCK}, {NAME}, {KIND} plus the metrics carried by the
narrative event.

Headline wording matters.  Words such as CRASHES or REBOUNDS are read by the
coupling check in contracts.py, so a headline may only use a directional
keyword when the same day's move goes that way.
"""

from __future__ import annotations

# --------------------------- Phenomena ---------------------------

PHENOMENON_NEWS: dict[str, dict] = {
    # ---- dead-cat bounce ----
    "dead_cat_bounce.crash": {
        "headlines": [
            "{STOCK} PLUNGES as sellers head for the exits",
            "{STOCK} CRASHES in heavy selling",
        ],
        "description": "Shares are down {drop_pct:.0f}% from where the selling started.",
        "telltale": "CRASH: wait for the first bounce and judge it before buying.",
    },
    "dead_cat_bounce.bounce": {
        "headlines": [
            "{STOCK} BOUNCES off the lows",
            "{STOCK} REBOUNDS as bargain hunters step in",
        ],
        "description": "Relief bounce #{bounce_number} targets about {bounce_pct:.0f}%.",
        "telltale": "BOUNCE: the first bounce after a crash is usually a trap. Watch volume and the 61.8% level.",
    },
    "dead_cat_bounce.decline": {
        "headlines": [
            "{STOCK} SLIDES as relief bounce fades",
            "{STOCK} DROPS back toward the lows",
        ],
        "description": "Buyers could not hold the bounce.",
        "telltale": "DECLINE: a failed bounce on light volume was the dead cat.",
    },
    "dead_cat_bounce.recovery": {
        "headlines": [
            "{STOCK} RECOVERS as buyers return",
            "{STOCK} CLIMBS out of its base",
        ],
        "description": "Higher lows and rising volume point to a real bottom.",
        "telltale": "RECOVERY: base held, demand returning.",
    },
    "dead_cat_bounce.recovery_complete": {
        "headlines": ["{STOCK} completes its recovery from the crash"],
        "description": "Shares finish {change_pct:+.1f}% versus the pre-crash price.",
        "telltale": "COMPLETE: strong first bounce + volume = real bottom.",
    },
    "dead_cat_bounce.new_base": {
        "headlines": ["{STOCK} settles into a new, lower range"],
        "description": "Shares finish {change_pct:+.1f}% versus the pre-crash price.",
        "telltale": "COMPLETE: each bounce was weaker than the last, the classic dead cat.",
    },
    # ---- short squeeze ----
    "short_squeeze.short_build": {
        "headlines": ["Short interest in {STOCK} reaches {short_interest_pct:.0f}% of float"],
        "description": "Days to cover now {days_to_cover:.1f}. Borrow is getting tight.",
        "telltale": "SETUP: crowded short. Fuel for a squeeze if a buyer shows up.",
    },
    "short_squeeze.buildup": {
        "headlines": ["{STOCK} RISES as crowded shorts get nervous"],
        "description": "Short interest {short_interest_pct:.0f}% of float, {days_to_cover:.1f} days to cover.",
        "telltale": "BUILDUP: squeeze pressure building. Early, but risky.",
    },
    "short_squeeze.squeeze": {
        "headlines": [
            "{STOCK} SKYROCKETS as shorts scramble to cover",
            "{STOCK} SOARS in a full-blown short squeeze",
        ],
        "description": "Up {gain_pct:.0f}% from the start on {volume_multiple:.1f}x volume.",
        "telltale": "SQUEEZE: forced buying, not fundamentals. Do not chase.",
    },
    "short_squeeze.climax": {
        "headlines": ["{STOCK} trades {volume_multiple:.0f}x normal volume in a wild session"],
        "description": "RSI {rsi:.0f}. Borrow fees have stopped climbing.",
        "telltale": "CLIMAX: parabolic move + volume climax + RSI divergence = exhaustion.",
    },
    "short_squeeze.reversal": {
        "headlines": ["{STOCK} PLUNGES as the squeeze exhausts"],
        "description": "Shares are {off_peak_pct:.0f}% off the peak.",
        "telltale": "REVERSAL: the fade after the climax played out.",
    },
    "short_squeeze.reversal_failed": {
        "headlines": ["{STOCK} squeeze refuses to unwind"],
        "description": "Shares are holding most of the squeeze gains.",
        "telltale": "NO FADE: a veto (gamma, fresh shorts, real news) kept the squeeze alive.",
    },
    "short_squeeze.complete": {
        "headlines": ["{STOCK} short squeeze episode ends"],
        "description": "Net move over the episode: {change_pct:+.1f}%.",
        "telltale": "",
    },
    # ---- FOMO rally ----
    "fomo_rally.buildup": {
        "headlines": ["{STOCK} CLIMBS as retail chatter builds"],
        "description": "Social mentions running {mentions:.1f}x normal.",
        "telltale": "BUILDUP: retail attention rising.",
    },
    "fomo_rally.euphoria": {
        "headlines": ["{STOCK} SOARS as social mentions multiply"],
        "description": "Mentions {mentions:.1f}x normal on {volume_multiple:.1f}x volume.",
        "telltale": "EUPHORIA: watch the put/call ratio and price deviation.",
    },
    "fomo_rally.blow_off": {
        "headlines": ["{STOCK} trades {volume_multiple:.0f}x normal volume as retail piles in"],
        "description": "Put/call ratio down to {put_call:.2f}.",
        "telltale": "BLOW-OFF: verticality + euphoria + divergence + volume = the top.",
    },
    "fomo_rally.crash": {
        "headlines": [
            "{STOCK} COLLAPSES as the FOMO rally unwinds",
            "{STOCK} TUMBLES as late buyers rush out",
        ],
        "description": "Momentum buyers are heading for the exits.",
        "telltale": "CRASH: the fade after the blow-off.",
    },
    "fomo_rally.plateau": {
        "headlines": ["{STOCK} stalls near its highs after the FOMO run"],
        "description": "The expected unwind has not come yet.",
        "telltale": "NO FADE: mania can last longer than expected.",
    },
    "fomo_rally.complete": {
        "headlines": ["{STOCK} FOMO episode winds down"],
        "description": "Net move over the episode: {change_pct:+.1f}%.",
        "telltale": "",
    },
    # ---- executive change ----
    "executive_change.announcement_abrupt_no_successor": {
        "headlines": ["{STOCK} PLUNGES as {role} exits effective immediately"],
        "description": "No successor named. The 8-K offers few details.",
        "telltale": "ABRUPT EXIT: no successor + vague filing = low odds of a quick reversal.",
    },
    "executive_change.announcement_cfo_exit_clean": {
        "headlines": ["{STOCK} {role} departs to pursue other opportunities"],
        "description": "Filing states no disagreement on accounting matters.",
        "telltale": "CFO EXIT: read the 8-K. Clean language is the key signal.",
    },
    "executive_change.announcement_planned_internal": {
        "headlines": ["{STOCK} {role} to step down; {successor} named successor"],
        "description": "The transition was part of a long-running succession plan.",
        "telltale": "PLANNED: internal successor named. Drop is often overdone.",
    },
    "executive_change.announcement_gold_standard": {
        "headlines": ["{STOCK} {role} steps down; {successor} takes over"],
        "description": "Board cites an orderly handoff; audit committee reports no issues.",
        "telltale": "WATCH: succession, clean 8-K, capitulation volume, then three days holding the low.",
    },
    "executive_change.stabilization": {
        "headlines": ["{STOCK} steadies after leadership news"],
        "description": "Traders watching whether the ${low:.2f} level holds.",
        "telltale": "STABILIZATION: three days holding the first day's low completes the setup.",
    },
    "executive_change.reversal": {
        "headlines": ["{STOCK} RECOVERS as new leadership earns confidence"],
        "description": "Investors warm to the succession plan.",
        "telltale": "REVERSAL: the setup delivered.",
    },
    "executive_change.decline_continues": {
        "headlines": ["{STOCK} SLIDES as leadership doubts linger"],
        "description": "No clear plan from the interim team.",
        "telltale": "NO REVERSAL: the signals were not there.",
    },
    "executive_change.reversal_complete": {
        "headlines": ["{STOCK} leadership transition complete"],
        "description": "Shares finish {change_pct:+.1f}% from the announcement.",
        "telltale": "",
    },
    "executive_change.decline_complete": {
        "headlines": ["{STOCK} leadership saga ends with shares below pre-news level"],
        "description": "Shares finish {change_pct:+.1f}% from the announcement.",
        "telltale": "",
    },
    # ---- strategic pivot ----
    "strategic_pivot.announcement_reactive": {
        "headlines": ["{STOCK} TANKS on abrupt pivot to {target_market}"],
        "description": "Core business shrinking; the plan is light on detail.",
        "telltale": "REACTIVE PIVOT: a rebrand of a shrinking core rarely works.",
    },
    "strategic_pivot.announcement_structural": {
        "headlines": ["{STOCK} FALLS on costly restructuring toward {target_market}"],
        "description": "Plan requires new financing and a multi-year build.",
        "telltale": "STRUCTURAL PIVOT: dilution and a long payback.",
    },
    "strategic_pivot.announcement_symbolic": {
        "headlines": ["{STOCK} unveils {target_market} initiative; shares SLIP"],
        "description": "Small, self-funded experiment alongside the core business.",
        "telltale": "SYMBOLIC PIVOT: check for financing, anchor revenue and insider buying.",
    },
    "strategic_pivot.announcement_gold": {
        "headlines": ["{STOCK} launches funded {target_market} unit with an anchor customer"],
        "description": "Non-dilutive financing in place; insiders buying.",
        "telltale": "WATCH: all four pivot signals are present.",
    },
    "strategic_pivot.execution_void": {
        "headlines": ["{STOCK} {target_market} plans enter a quiet execution phase"],
        "description": "No new milestones expected for several weeks.",
        "telltale": "EXECUTION VOID: the gap fill during this quiet stretch is the last signal.",
    },
    "strategic_pivot.insider_buy": {
        "headlines": ["{STOCK} insiders add shares as {target_market} plans take shape"],
        "description": "{insider_buyers} insider(s) bought on the open market.",
        "telltale": "INSIDER BUY: management putting money behind the pivot.",
    },
    "strategic_pivot.traction": {
        "headlines": ["{STOCK} CLIMBS as {target_market} unit books first revenue"],
        "description": "Early traction validates the new direction.",
        "telltale": "TRACTION: the pivot is working.",
    },
    "strategic_pivot.doubts": {
        "headlines": ["{STOCK} SLIDES as {target_market} pivot stalls"],
        "description": "Investors question the timeline and the cost.",
        "telltale": "STALLED: the pivot lacked the signals.",
    },
    "strategic_pivot.reversal_complete": {
        "headlines": ["{STOCK} pivot story plays out"],
        "description": "Shares finish {change_pct:+.1f}% from the announcement.",
        "telltale": "",
    },
    "strategic_pivot.new_base": {
        "headlines": ["{STOCK} finds a new base after its pivot"],
        "description": "Shares finish {change_pct:+.1f}% from the announcement.",
        "telltale": "",
    },
    # ---- liquidity sweep ----
    "liquidity_sweep.setup": {
        "headlines": ["{STOCK} tests critical support at ${support:.2f}"],
        "description": "Stock approaching a {touch_count}-touch support level.",
        "telltale": "SETUP: obvious support attracts stop-losses below it.",
    },
    "liquidity_sweep.sweep": {
        "headlines": ["{STOCK} CRASHES through key support on massive volume"],
        "description": "Support at ${support:.2f} breached on {volume_multiple:.1f}x volume.",
        "telltale": "SWEEP: stop-loss hunting. Wait for price to reclaim support.",
    },
    "liquidity_sweep.reclaim": {
        "headlines": ["{STOCK} REBOUNDS above ${support:.2f} support"],
        "description": "{gold_count}/4 criteria met, {probability_pct:.0f}% reversal odds.",
        "telltale": "RE-ENTRY: the reclaim of support is the entry signal.",
    },
    "liquidity_sweep.continuation": {
        "headlines": ["{STOCK} extends GAINS after the sweep"],
        "description": "Up {gain_pct:.1f}% since the setup.",
        "telltale": "CONTINUATION: no sellers left below.",
    },
    "liquidity_sweep.failed": {
        "headlines": ["{STOCK} sweep reversal FAILS as support turns to resistance"],
        "description": "Only {gold_count}/4 criteria were met.",
        "telltale": "FAILED SWEEP: the criteria filter exists for this case.",
    },
    "liquidity_sweep.complete_success": {
        "headlines": ["{STOCK} liquidity sweep plays out"],
        "description": "Net move: {change_pct:+.1f}%.",
        "telltale": "",
    },
    "liquidity_sweep.complete_failure": {
        "headlines": ["{STOCK} liquidity sweep setup ends"],
        "description": "Net move: {change_pct:+.1f}%.",
        "telltale": "",
    },
    # ---- short-seller report ----
    "short_seller_report.initial": {
        "headlines": [
            "{STOCK} CRATERS as {reporter} alleges accounting fraud",
            "{reporter} releases damning report; {STOCK} PLUNGES",
        ],
        "description": "Report claims revenue was inflated through channel stuffing.",
        "telltale": "REPORT: the first drop is the biggest. Watch how the company answers.",
    },
    "short_seller_report.rebuttal_data": {
        "headlines": ["{STOCK} publishes point-by-point rebuttal to {reporter}"],
        "description": "Company releases customer and bank-balance data.",
        "telltale": "DATA REBUTTAL: numbers, not adjectives.",
    },
    "short_seller_report.denial": {
        "headlines": ['{STOCK} "categorically denies" {reporter} allegations'],
        "description": "No supporting data released.",
        "telltale": "DENIAL ONLY: a denial without data is not a rebuttal.",
    },
    "short_seller_report.followup": {
        "headlines": ["{STOCK} TUMBLES as {reporter} releases Part {wave}"],
        "description": "New documents allege additional questionable transactions.",
        "telltale": "FOLLOW-UP: every extra wave lowers the odds of a clean rebound.",
    },
    "short_seller_report.auditor": {
        "headlines": ["Auditor stands behind {STOCK} financial statements"],
        "description": "Audit firm reaffirms its opinion on the last annual report.",
        "telltale": "AUDITOR CONFIRMATION: a key debunking signal.",
    },
    "short_seller_report.insider_support": {
        "headlines": ["{STOCK} insiders buy shares after short report"],
        "description": "Form 4 filings show open-market purchases.",
        "telltale": "INSIDER SUPPORT: management putting money behind its denial.",
    },
    "short_seller_report.investigation": {
        "headlines": ["Forensic accountants review {reporter} claims on {STOCK}"],
        "description": "A verdict is expected within days.",
        "telltale": "INVESTIGATION: the outcome is already set by the signals you saw.",
    },
    "short_seller_report.debunked": {
        "headlines": ["{STOCK} cleared as {reporter} report is debunked"],
        "description": "Independent review finds the allegations unsupported.",
        "telltale": "DEBUNKED: rebuttal + auditor + insiders + covering.",
    },
    "short_seller_report.vindicated": {
        "headlines": ["{reporter} vindicated as {STOCK} restates earnings"],
        "description": "After {wave} waves of evidence, misstatements confirmed.",
        "telltale": "VINDICATED: permanent damage to earnings.",
    },
    # ---- insider buying ----
    "insider_buying.buy": {
        "headlines": ["SEC Form 4: {STOCK} {title} buys ${amount:,.0f} on the open market"],
        "description": "Code P purchase with personal funds.",
        "telltale": "INSIDER BUY: one buyer is good; a cluster is better.",
    },
    "insider_buying.cluster": {
        "headlines": ["SEC Form 4: {buyers} {STOCK} insiders make open market purchases"],
        "description": "Cluster buying has roughly twice the predictive power of a single buy.",
        "telltale": "CLUSTER: three or more insiders buying.",
    },
    "insider_buying.catalyst": {
        "headlines": ["{STOCK} SURGES as catalyst rewards insider buyers"],
        "description": "{buyers} insiders bought ahead of the news.",
        "telltale": "CATALYST: insiders were early.",
    },
    "insider_buying.fizzle": {
        "headlines": ["{STOCK} insider buying signal FIZZLES"],
        "description": "{buyers} insider purchase(s) did not lead to a catalyst.",
        "telltale": "FIZZLE: a lone or routine buy is a weak signal.",
    },
    # ---- news shakeout ----
    "news_shakeout.panic": {
        "headlines": [
            "{STOCK} PLUNGES on {news_label}",
            "{STOCK} TUMBLES as {news_label} spooks holders",
        ],
        "description": "Shares drop about {drop_pct:.0f}% on heavy volume.",
        "telltale": "SHAKEOUT: first ask whether the news is transient or terminal.",
    },
    "news_shakeout.stabilization": {
        "headlines": ["{STOCK} trading steadies after the {news_label}"],
        "description": "Sellers are thinning out. Watch the next few closes against the panic low.",
        "telltale": "STABILIZATION: a third close above the panic low is the tell.",
    },
    "news_shakeout.recovery": {
        "headlines": ["{STOCK} REBOUNDS as the {news_label} worry passes"],
        "description": "Buyers step back in to close the gap.",
        "telltale": "RECOVERY: transient news plus climax volume usually washes out.",
    },
    "news_shakeout.relapse": {
        "headlines": ["{STOCK} SLIDES as {news_label} fallout spreads"],
        "description": "The base did not hold.",
        "telltale": "RELAPSE: terminal news does not wash out.",
    },
    "news_shakeout.recovered": {
        "headlines": ["{STOCK} fills the gap left by the {news_label}"],
        "description": "Shares finish {change_pct:+.1f}% versus the pre-news price.",
        "telltale": "COMPLETE: the panic was the buying opportunity.",
    },
    "news_shakeout.damage_done": {
        "headlines": ["{STOCK} stays down after the {news_label}"],
        "description": "Shares finish {change_pct:+.1f}% versus the pre-news price.",
        "telltale": "COMPLETE: some news really is as bad as it looks.",
    },
    # ---- index rebalance ----
    "index_rebalance.announce_addition": {
        "headlines": ["{STOCK} to join the {index}"],
        "description": "Index funds must buy at the close on the effective date.",
        "telltale": "INDEX ADD: forced buying is temporary; the run-up usually unwinds after the effective date.",
    },
    "index_rebalance.announce_deletion": {
        "headlines": ["{STOCK} to be removed from the {index}"],
        "description": "Index funds must sell at the close on the effective date.",
        "telltale": "INDEX DELETE: forced selling is temporary; the drop usually unwinds after the effective date.",
    },
    "index_rebalance.run_up_addition": {
        "headlines": ["Funds position in {STOCK} ahead of {index} inclusion"],
        "description": "Front-runners are buying before the index funds have to.",
        "telltale": "RUN-UP: the bigger the move into the date, the more there is to give back.",
    },
    "index_rebalance.run_up_deletion": {
        "headlines": ["Funds trim {STOCK} ahead of {index} removal"],
        "description": "Front-runners are selling before the index funds have to.",
        "telltale": "RUN-DOWN: the selling is mechanical, not a verdict on the business.",
    },
    "index_rebalance.effective": {
        "headlines": ["{index} change for {STOCK} takes effect at the close"],
        "description": "Market-on-close volume hit {moc_multiple:.0f}x normal after a {run_up_pct:.1f}% move into the date.",
        "telltale": "EFFECTIVE DAY: the forced flow ends today. Check T+2.",
    },
    "index_rebalance.fade": {
        "headlines": ["{STOCK} FADES after {index} inclusion"],
        "description": "With the index buying done, the premium is leaking out.",
        "telltale": "REVERSAL: T+2 gave ground, the classic post-inclusion fade.",
    },
    "index_rebalance.rebound": {
        "headlines": ["{STOCK} REBOUNDS after {index} removal"],
        "description": "With the index selling done, bargain hunters return.",
        "telltale": "REVERSAL: the forced seller is gone.",
    },
    "index_rebalance.reverted": {
        "headlines": ["{STOCK} index-flow move has unwound"],
        "description": "Shares finish {change_pct:+.1f}% versus the pre-announcement price.",
        "telltale": "COMPLETE: index flows move prices only while they last.",
    },
    "index_rebalance.held": {
        "headlines": ["{STOCK} index-flow move sticks"],
        "description": "Shares finish {change_pct:+.1f}% versus the pre-announcement price.",
        "telltale": "COMPLETE: other news kept the move in place this time.",
    },
    # ---- stock split ----
    "stock_split.announcement": {
        "headlines": [
            "{STOCK} announces {ratio_name} stock split",
            "{STOCK} board approves a {ratio_name} split",
        ],
        "description": "Retail appeal: {appeal}. The share count changes; the business does not.",
        "telltale": "SPLIT ANNOUNCED: a split adds no value, but retail buys the story.",
    },
    "stock_split.run_up": {
        "headlines": ["Retail traders pile into {STOCK} ahead of {ratio_name} split"],
        "description": "Call options and small-lot buying pick up.",
        "telltale": "RUN-UP: the move into a split is hype, and hype gets sold.",
    },
    "stock_split.eve": {
        "headlines": ["{STOCK} {ratio_name} split takes effect tomorrow"],
        "description": "Brokers will show the split-adjusted price at the open.",
        "telltale": "EVE: note the size of the run-up and the call volume.",
    },
    "stock_split.split_day": {
        "headlines": ["{STOCK} begins trading split-adjusted near ${new_price:,.2f}"],
        "description": "Run-up since the announcement: {run_up_pct:+.1f}%. Out-of-the-money calls at {otm_call_multiple:.1f}x normal.",
        "telltale": "SPLIT DAY: a lower high by T+3 says the hype is spent.",
    },
    "stock_split.fade": {
        "headlines": ["{STOCK} post-split enthusiasm FADES"],
        "description": "The bounce after the {ratio_name} split printed a lower high.",
        "telltale": "SELL THE NEWS: mega-cap, big run-up, call frenzy, lower high.",
    },
    "stock_split.defies_fade": {
        "headlines": ["{STOCK} shrugs off the usual post-split hangover"],
        "description": "Fresh news is keeping buyers around after the {ratio_name} split.",
        "telltale": "VETO: real news beats split hype.",
    },
    "stock_split.faded": {
        "headlines": ["{STOCK} gives back its split run-up"],
        "description": "Shares finish {change_pct:+.1f}% versus the split-adjusted pre-announcement price.",
        "telltale": "COMPLETE: the split was sold, as it usually is.",
    },
    "stock_split.held": {
        "headlines": ["{STOCK} keeps its post-split premium"],
        "description": "Shares finish {change_pct:+.1f}% versus the split-adjusted pre-announcement price.",
        "telltale": "COMPLETE: this time the buyers stayed.",
    },
    # ---- insider selling ----
    "insider_selling.sale": {
        "headlines": ["SEC Form 4: {STOCK} {title} sells ${amount:,.0f} of stock"],
        "description": "Stated reason: {reason}.",
        "telltale": "INSIDER SALE: selling is usually noise; buying is the signal.",
    },
    "insider_selling.cluster": {
        "headlines": ["SEC Form 4: {sellers} {STOCK} insider sales in {window_days} days"],
        "description": "Latest filing: {title} sold ${amount:,.0f}.",
        "telltale": "CLUSTER SELLING: several insiders selling is worth a look, not a panic.",
    },
    # ---- fallback ----
    "legacy.impact_up": {
        "headlines": ["{STOCK} RISES on {KIND} news"],
        "description": "Shares move {move_pct:.1f}%.",
        "telltale": "",
    },
    "legacy.impact_down": {
        "headlines": ["{STOCK} FALLS on {KIND} news"],
        "description": "Shares move {move_pct:.1f}%.",
        "telltale": "",
    },
}


# --------------------------- Basic news ---------------------------

EPS_DRIVEN_NEWS: dict[str, list[dict]] = {
    "negative": [
        {
            "id": "factory_explosion",
            "headline": "{STOCK} factory explosion halts production",
            "description": "Major industrial accident. Production offline.",
            "eps_impact": -0.12,
            "weight": 1,
            "conflicts_with": ["efficiency_gains", "market_expansion", "earnings_beat", "major_contract"],
        },
        {
            "id": "product_recall",
            "headline": "{STOCK} recalls 2 million defective units",
            "description": "Quality control failure leads to a massive recall.",
            "eps_impact": -0.08,
            "weight": 2,
            "conflicts_with": ["breakthrough", "patent_win", "earnings_beat"],
        },
        {
            "id": "contract_lost",
            "headline": "{STOCK} defense contract awarded to a rival",
            "description": "Government contract awarded to a competitor.",
            "eps_impact": -0.15,
            "weight": 1,
            "conflicts_with": ["major_contract", "earnings_beat"],
        },
        {
            "id": "regulatory_fine",
            "headline": "{STOCK} fined heavily by regulators",
            "description": "Regulatory violations result in a substantial penalty.",
            "eps_impact": -0.06,
            "weight": 2,
            "conflicts_with": ["earnings_beat"],
        },
        {
            "id": "data_breach",
            "headline": "Data breach exposes {STOCK} customer records",
            "description": "Cybersecurity failure compromises millions of accounts.",
            "eps_impact": -0.05,
            "weight": 2,
            "conflicts_with": ["patent_win", "breakthrough"],
        },
        {
            "id": "supply_chain",
            "headline": "{STOCK} faces critical supply chain disruption",
            "description": "Key supplier issues threaten production.",
            "eps_impact": -0.07,
            "weight": 2,
            "conflicts_with": ["efficiency_gains", "earnings_beat"],
        },
    ],
    "positive": [
        {
            "id": "major_contract",
            "headline": "{STOCK} secures massive government contract",
            "description": "Multi-year deal worth billions in revenue.",
            "eps_impact": 0.12,
            "weight": 1,
            "conflicts_with": ["contract_lost", "earnings_miss", "ceo_scandal", "lawsuit_major"],
        },
        {
            "id": "breakthrough",
            "headline": "{STOCK} announces breakthrough in quantum logistics",
            "description": "New technology promises market dominance.",
            "eps_impact": 0.10,
            "weight": 1,
            "conflicts_with": ["product_recall", "data_breach", "earnings_miss"],
        },
        {
            "id": "efficiency_gains",
            "headline": "{STOCK} automation initiative cuts costs by 30%",
            "description": "Operational excellence drives margin expansion.",
            "eps_impact": 0.08,
            "weight": 2,
            "conflicts_with": ["factory_explosion", "supply_chain", "earnings_miss"],
        },
        {
            "id": "market_expansion",
            "headline": "{STOCK} expands into a lucrative new market",
            "description": "New territory opens a significant revenue opportunity.",
            "eps_impact": 0.06,
            "weight": 2,
            "conflicts_with": ["factory_explosion", "earnings_miss"],
        },
        {
            "id": "acquisition_synergy",
            "headline": "{STOCK} acquisition delivers better-than-expected synergies",
            "description": "Integration success boosts the earnings outlook.",
            "eps_impact": 0.07,
            "weight": 2,
            "conflicts_with": ["earnings_miss", "lawsuit_major"],
        },
        {
            "id": "patent_win",
            "headline": "{STOCK} patent approved for new core technology",
            "description": "Intellectual property secures a competitive moat.",
            "eps_impact": 0.05,
            "weight": 2,
            "conflicts_with": ["product_recall", "data_breach", "earnings_miss"],
        },
    ],
}

SENTIMENT_NEWS: dict[str, list[dict]] = {
    "negative": [
        {
            "id": "analyst_downgrade",
            "headline": "Analysts downgrade {STOCK} citing growth concerns",
            "description": "Wall Street turns bearish on the outlook.",
            "sentiment_shock": -0.06,
            "weight": 3,
            "conflicts_with": ["analyst_upgrade", "analyst_raises_target"],
        },
        {
            "id": "board_shuffle",
            "headline": "{STOCK} replaces board members in surprise reshuffle",
            "description": "Leadership changes spark uncertainty.",
            "sentiment_shock": -0.03,
            "weight": 3,
            "conflicts_with": ["ceo_conference"],
        },
        {
            "id": "sector_rotation_out",
            "headline": "Funds rotate out of the {STOCK} sector",
            "description": "Institutional investors shift allocations.",
            "sentiment_shock": -0.04,
            "weight": 2,
            "conflicts_with": ["fund_accumulation"],
        },
        {
            "id": "analyst_cuts_estimates",
            "headline": "Wall Street cuts {STOCK} estimates ahead of earnings",
            "description": "Analysts trim expectations citing headwinds.",
            "sentiment_shock": -0.04,
            "weight": 2,
            "conflicts_with": ["analyst_raises_target", "analyst_upgrade"],
        },
    ],
    "positive": [
        {
            "id": "analyst_upgrade",
            "headline": "Sector analysts upgrade {STOCK} to strong buy",
            "description": "Bullish thesis gains momentum.",
            "sentiment_shock": 0.06,
            "weight": 3,
            "conflicts_with": ["analyst_downgrade", "analyst_cuts_estimates"],
        },
        {
            "id": "analyst_raises_target",
            "headline": "Analyst raises {STOCK} price target by 30%",
            "description": "Expects strong earnings ahead.",
            "sentiment_shock": 0.04,
            "weight": 2,
            "conflicts_with": ["analyst_downgrade", "analyst_cuts_estimates"],
        },
        {
            "id": "ceo_conference",
            "headline": "{STOCK} CEO delivers impressive keynote",
            "description": "Leadership vision inspires investor confidence.",
            "sentiment_shock": 0.03,
            "weight": 3,
            "conflicts_with": ["board_shuffle", "ceo_scandal"],
        },
        {
            "id": "buyback_announce",
            "headline": "{STOCK} announces major stock buyback program",
            "description": "Company signals confidence that shares are undervalued.",
            "sentiment_shock": 0.05,
            "weight": 2,
            "conflicts_with": ["dividend_cut"],
        },
        {
            "id": "fund_accumulation",
            "headline": "Major fund building large {STOCK} position",
            "description": "Smart money accumulating shares.",
            "sentiment_shock": 0.04,
            "weight": 2,
            "conflicts_with": ["sector_rotation_out"],
        },
    ],
    "neutral": [
        {
            "id": "shareholder_meeting",
            "headline": "{STOCK} hosting virtual shareholder meeting",
            "description": "Annual meeting scheduled, no surprises expected.",
            "sentiment_shock": 0.01,
            "weight": 4,
            "conflicts_with": [],
        },
        {
            "id": "analysts_divided",
            "headline": "Analysts divided on {STOCK} trajectory",
            "description": "Mixed opinions create uncertainty.",
            "volatility_boost": 0.3,
            "weight": 3,
            "conflicts_with": [],
        },
        {
            "id": "maintains_position",
            "headline": "{STOCK} maintains position amid market turbulence",
            "description": "Steady performance in volatile conditions.",
            "weight": 3,
            "conflicts_with": [],
        },
    ],
}

HYBRID_NEWS: dict[str, list[dict]] = {
    "negative": [
        {
            "id": "ceo_scandal",
            "headline": "{STOCK} CEO under investigation for misconduct",
            "description": "Executive misconduct allegations surface.",
            "eps_impact": -0.05,
            "sentiment_shock": -0.12,
            "weight": 1,
            "conflicts_with": ["ceo_conference", "earnings_beat", "major_contract"],
        },
        {
            "id": "lawsuit_major",
            "headline": "{STOCK} faces class action lawsuit",
            "description": "Shareholders allege material misrepresentation.",
            "eps_impact": -0.04,
            "sentiment_shock": -0.08,
            "weight": 2,
            "conflicts_with": ["earnings_beat", "major_contract", "acquisition_synergy"],
        },
        {
            "id": "dividend_cut",
            "headline": "{STOCK} suspends dividend payments",
            "description": "Cash conservation measures disappoint income investors.",
            "eps_impact": -0.03,
            "sentiment_shock": -0.10,
            "weight": 2,
            "conflicts_with": ["dividend_hike", "buyback_announce", "earnings_beat"],
        },
        {
            "id": "earnings_miss",
            "headline": "{STOCK} quarterly earnings miss estimates badly",
            "description": "Results fall short of analyst expectations.",
            "eps_impact": -0.08,
            "sentiment_shock": -0.07,
            "weight": 2,
            "conflicts_with": ["earnings_beat", "earnings_beat_weak_guidance", "earnings_beat_priced_in",
                               "major_contract", "breakthrough", "efficiency_gains", "market_expansion",
                               "acquisition_synergy", "patent_win"],
        },
    ],
    "positive": [
        {
            "id": "earnings_beat",
            "headline": "{STOCK} smashes earnings expectations",
            "description": "Quarterly results exceed estimates by a wide margin.",
            "eps_impact": 0.10,
            "sentiment_shock": 0.08,
            "weight": 2,
            "conflicts_with": ["earnings_miss", "factory_explosion", "product_recall", "contract_lost",
                               "regulatory_fine", "supply_chain", "ceo_scandal", "lawsuit_major",
                               "dividend_cut"],
        },
        {
            "id": "earnings_beat_weak_guidance",
            "headline": "{STOCK} beats estimates but issues cautious guidance",
            "description": "Strong quarter overshadowed by a careful outlook.",
            "eps_impact": 0.05,
            "sentiment_shock": -0.06,
            "weight": 2,
            "conflicts_with": ["earnings_miss", "earnings_beat", "earnings_beat_priced_in"],
        },
        {
            "id": "earnings_beat_priced_in",
            "headline": "{STOCK} beats but 'already priced in' say analysts",
            "description": "Results meet high expectations, profit-taking ensues.",
            "eps_impact": 0.08,
            "sentiment_shock": -0.04,
            "weight": 1,
            "conflicts_with": ["earnings_miss", "earnings_beat", "earnings_beat_weak_guidance"],
        },
        {
            "id": "dividend_hike",
            "headline": "{STOCK} announces dividend increase of 25%",
            "description": "Shareholder returns boosted significantly.",
            "eps_impact": 0.02,
            "sentiment_shock": 0.06,
            "weight": 2,
            "conflicts_with": ["dividend_cut", "earnings_miss"],
        },
        {
            "id": "takeover_rumor",
            "headline": "RUMOR: {STOCK} takeover bid imminent",
            "description": "Acquisition speculation drives a buying frenzy.",
            "eps_impact": 0.05,
            "sentiment_shock": 0.15,
            "weight": 1,
            "conflicts_with": ["ceo_scandal", "lawsuit_major"],
        },
    ],
}

MARKET_NEWS: dict[str, list[dict]] = {
    "positive": [
        {"id": "market_rally_economic", "headline": "Markets rally on positive economic data",
         "market_shock": 0.03,
         "conflicts_with": ["market_recession_fears", "market_panic_selloff", "market_rate_hike",
                            "market_geopolitical"]},
        {"id": "market_confidence_surge", "headline": "Investor confidence reaches a multi-year high",
         "market_shock": 0.02,
         "conflicts_with": ["market_recession_fears", "market_panic_selloff", "market_rate_hike",
                            "market_geopolitical"]},
        {"id": "market_supportive_policy", "headline": "Central bank signals supportive monetary policy",
         "market_shock": 0.04,
         "conflicts_with": ["market_rate_hike", "market_recession_fears", "market_panic_selloff"]},
        {"id": "market_trade_deal", "headline": "Trade deal agreement boosts market sentiment",
         "market_shock": 0.03,
         "conflicts_with": ["market_geopolitical", "market_panic_selloff", "market_recession_fears"]},
    ],
    "negative": [
        {"id": "market_recession_fears", "headline": "Markets slump amid recession fears",
         "market_shock": -0.04,
         "conflicts_with": ["market_rally_economic", "market_confidence_surge", "market_supportive_policy",
                            "market_trade_deal"]},
        {"id": "market_panic_selloff", "headline": "Investor panic triggers a broad selloff",
         "market_shock": -0.05,
         "conflicts_with": ["market_rally_economic", "market_confidence_surge", "market_supportive_policy",
                            "market_trade_deal"]},
        {"id": "market_rate_hike", "headline": "Central bank raises rates unexpectedly",
         "market_shock": -0.03,
         "conflicts_with": ["market_supportive_policy", "market_confidence_surge", "market_rally_economic"]},
        {"id": "market_geopolitical", "headline": "Geopolitical tensions rattle markets",
         "market_shock": -0.03,
         "conflicts_with": ["market_trade_deal", "market_confidence_surge", "market_rally_economic"]},
    ],
}

QUIET_DAY_NEWS: list[dict] = [
    {
        "headline": "Quiet session as traders await fresh catalysts",
        "description": "With no news, prices drift back toward fair value.",
        "telltale": "QUIET DAY: no-news days are when mispricings slowly correct.",
    },
    {
        "headline": "Markets drift in light trading",
        "description": "Volume well below average across the board.",
        "telltale": "QUIET DAY: light volume moves say little about direction.",
    },
    {
        "headline": "Volatility cools to a multi-week low",
        "description": "Option premiums shrink as the tape goes calm.",
        "telltale": "QUIET DAY: calm stretches often come before the next big move.",
    },
    {
        "headline": "No major headlines on the wire today",
        "description": "Analysts use the lull to revisit earnings models.",
        "telltale": "QUIET DAY: fundamentals matter most when nothing else is happening.",
    },
]

BASIC_NEWS_TABLES = {
    "eps_driven": EPS_DRIVEN_NEWS,
    "sentiment": SENTIMENT_NEWS,
    "hybrid": HYBRID_NEWS,
    "market": MARKET_NEWS,
}


def event_definitions(tables=BASIC_NEWS_TABLES) -> dict[str, dict]:
    """Flatten the basic-news tables into event id -> definition."""
    out: dict[str, dict] = {}
    for pools in tables.values():
        for entries in pools.values():
            for entry in entries:
                out[entry["id"]] = entry
    return out
