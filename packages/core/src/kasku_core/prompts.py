"""Prompt construction for the insight and forecast language-model calls.

Prompts are plain Indonesian text built from MonthlyStats, the optional
client snapshot and forecast history. Every builder is a pure function of
its inputs so the same data always yields the same prompt.
"""

from collections.abc import Sequence
from decimal import Decimal
from typing import NamedTuple, Optional

from kasku_core.formatting import (
    ZERO,
    format_month_year_label,
    format_percentage,
    format_rupiah,
)
from kasku_core.models import (
    FinancialPayload,
    ForecastResult,
    HistoryPoint,
    MonthlyStats,
    TrendDirection,
)

INSIGHT_SYSTEM_PROMPT = (
    "Kamu adalah penasihat keuangan pribadi yang teliti, konkret, "
    "dan fokus pada rencana aksi yang bisa dijalankan."
)

FORECAST_SYSTEM_PROMPT = (
    "Kamu adalah analis forecasting keuangan pribadi yang ketat pada angka "
    "dan memberikan output JSON valid."
)

HIGH_RATIO_THRESHOLD = Decimal("90")
CONCENTRATION_THRESHOLD = Decimal("40")
FORECAST_HISTORY_LIMIT = 12


class PromptContext(NamedTuple):
    """Data-driven findings and the critique directives that answer them."""

    findings: list[str]
    directives: list[str]


def _count(value: Decimal) -> str:
    return str(int(value)) if value == value.to_integral_value() else str(value)


def _numbered(items: Sequence[str]) -> list[str]:
    return [f"{idx}. {item}" for idx, item in enumerate(items, start=1)]


def build_dynamic_context(stats: MonthlyStats) -> PromptContext:
    """Derive the findings the model must address and how to critique them."""
    findings = []
    directives = []

    if stats.balance < 0:
        findings.append(f"Defisit arus kas sebesar {format_rupiah(abs(stats.balance))}.")
        directives.append(
            "Kritik utama harus menyorot pola belanja yang membuat defisit dan "
            "langkah pemulihan paling realistis dalam 30 hari."
        )
    else:
        findings.append(f"Surplus kas saat ini {format_rupiah(stats.balance)}.")
        directives.append(
            "Evaluasi apakah surplus ini berkelanjutan atau hanya efek sementara "
            "dari pola pemasukan musiman."
        )

    ratio = stats.expense_to_income_ratio
    if ratio is not None and ratio >= HIGH_RATIO_THRESHOLD:
        findings.append(
            "Rasio pengeluaran terhadap pemasukan sangat tinggi "
            f"({format_percentage(ratio)})."
        )
        directives.append(
            "Wajib berikan strategi pengurangan pengeluaran variabel dengan target "
            "minimal 10%-20% dalam 4 minggu."
        )

    share = stats.top_expense_category_share
    if share is not None and share >= CONCENTRATION_THRESHOLD and stats.top_expense_categories:
        top = stats.top_expense_categories[0].category
        findings.append(
            f"Pengeluaran terkonsentrasi di kategori {top} sebesar "
            f"{format_percentage(share)} dari total expense."
        )
        directives.append(
            f"Saran harus memprioritaskan efisiensi kategori {top} karena dampaknya "
            "paling besar."
        )

    if stats.recent_expense_trend == TrendDirection.UP:
        findings.append("Tren pengeluaran mingguan terbaru menunjukkan kenaikan.")
        directives.append(
            "Jelaskan pemicu kenaikan terbaru dan pasang kontrol batas mingguan "
            "untuk menahan tren naik."
        )

    if stats.projected_balance < 0:
        findings.append(
            "Proyeksi saldo akhir bulan berisiko negatif "
            f"({format_rupiah(stats.projected_balance)})."
        )
        directives.append(
            "Sertakan rencana mitigasi cepat dengan prioritas mingguan agar "
            "proyeksi saldo kembali positif."
        )

    if not findings:
        findings.append("Kondisi relatif stabil namun tetap perlu optimasi efisiensi.")
    if not directives:
        directives.append(
            "Fokus pada peningkatan kualitas tabungan dan disiplin alokasi cashflow."
        )

    return PromptContext(findings=findings, directives=directives)


def build_financial_payload_block(payload: Optional[FinancialPayload]) -> list[str]:
    """
    Describe an accepted client snapshot as prompt lines.

    Returns a single "not available" line when there is no usable snapshot.
    """
    if payload is None:
        return ["Data data_keuangan dari aplikasi klien: tidak tersedia."]

    summary = payload.summary
    chart = payload.chart
    transactions = payload.transactions
    insights = payload.insights
    period = payload.period
    daily, weekly, monthly = payload.daily, payload.weekly, payload.monthly
    gap = payload.backend_gap

    expense_by_category: dict[str, Decimal] = {}
    for tx in transactions.items:
        if tx.type != "expense":
            continue
        key = tx.category or "Lainnya"
        expense_by_category[key] = expense_by_category.get(key, ZERO) + tx.amount
    top_categories = _numbered(
        [
            f"{name}: {format_rupiah(amount)}"
            for name, amount in sorted(
                expense_by_category.items(), key=lambda item: item[1], reverse=True
            )[:3]
        ]
    )

    tx_sample = _numbered(
        [
            f"{tx.date} | {tx.type} | {format_rupiah(tx.amount)} | {tx.category} | {tx.note or '-'}"
            for tx in transactions.items[-8:]
        ]
    )
    daily_sample = _numbered(
        [
            f"{p.date} | in {format_rupiah(p.income)} | out {format_rupiah(p.expense)} "
            f"| net {format_rupiah(p.net)} | tx {_count(p.transaction_count)}"
            for p in daily.points[-7:]
        ]
    )
    weekly_sample = _numbered(
        [
            f"{p.week_label} ({p.start_date} s/d {p.end_date}) | in {format_rupiah(p.income)} "
            f"| out {format_rupiah(p.expense)} | net {format_rupiah(p.net)} "
            f"| tx {_count(p.transaction_count)}"
            for p in weekly.points[-4:]
        ]
    )
    monthly_sample = _numbered(
        [
            f"{p.month} | in {format_rupiah(p.income)} | out {format_rupiah(p.expense)} "
            f"| net {format_rupiah(p.net)} | tx {_count(p.transaction_count)}"
            for p in monthly.points[-4:]
        ]
    )

    peak_week = max(weekly.points, key=lambda p: p.expense, default=None)
    peak_month = max(monthly.points, key=lambda p: p.expense, default=None)

    if gap is not None:
        gap_line = (
            f"- Selisih klien vs backend -> income: {format_rupiah(gap.income_gap)} "
            f"({format_percentage(gap.income_gap_percent)}), expense: "
            f"{format_rupiah(gap.expense_gap)} ({format_percentage(gap.expense_gap_percent)}), "
            f"balance: {format_rupiah(gap.balance_gap)}"
        )
    else:
        gap_line = "- Selisih klien vs backend: N/A"

    return [
        "Data data_keuangan dari aplikasi klien (prioritaskan ini untuk kesimpulan "
        "jika ada selisih dengan data backend):",
        f"- Sumber klien: {payload.source}",
        f"- Dibuat oleh klien pada: {payload.generated_at}",
        f"- Periode klien -> bulan referensi: {period.reference_month or '-'}, "
        f"rentang: {period.start_date or '-'} s/d {period.end_date or '-'}",
        f"- Status payload klien: {payload.payload_status or 'unknown'}",
        f"- Ringkasan klien -> income: {format_rupiah(summary.income)}, "
        f"expense: {format_rupiah(summary.expense)}, balance: {format_rupiah(summary.balance)}, "
        f"saving: {format_rupiah(summary.saving)}, "
        f"expense ratio: {format_percentage(summary.expense_ratio_percent)}",
        gap_line,
        f"- Grafik klien -> total income: {format_rupiah(chart.total_income)}, "
        f"total expense: {format_rupiah(chart.total_expense)}, "
        f"net flow: {format_rupiah(chart.net_flow)}, "
        f"peak income: {format_rupiah(chart.peak_income)}, "
        f"peak expense: {format_rupiah(chart.peak_expense)}",
        f"- Transaksi klien -> total: {_count(transactions.total_count)}, "
        f"income count: {_count(transactions.income_count)}, "
        f"expense count: {_count(transactions.expense_count)}, "
        f"avg amount: {format_rupiah(transactions.average_amount)}",
        f"- Insight klien -> recommended saving: {format_rupiah(insights.recommended_saving)}, "
        f"saving gap: {format_rupiah(insights.saving_gap)}, status: {insights.saving_status}",
        f"- Harian klien -> points: {_count(daily.total_points or Decimal(len(daily.points)))}, "
        f"total income: {format_rupiah(daily.total_income)}, "
        f"total expense: {format_rupiah(daily.total_expense)}, "
        f"net flow: {format_rupiah(daily.net_flow)}",
        f"- Mingguan klien -> points: {_count(weekly.total_points or Decimal(len(weekly.points)))}, "
        f"total income: {format_rupiah(weekly.total_income)}, "
        f"total expense: {format_rupiah(weekly.total_expense)}, "
        f"net flow: {format_rupiah(weekly.net_flow)}",
        f"- Bulanan klien -> points: {_count(monthly.total_points or Decimal(len(monthly.points)))}, "
        f"total income: {format_rupiah(monthly.total_income)}, "
        f"total expense: {format_rupiah(monthly.total_expense)}, "
        f"net flow: {format_rupiah(monthly.net_flow)}",
        "- Puncak pengeluaran mingguan klien: "
        + (f"{peak_week.week_label} ({format_rupiah(peak_week.expense)})" if peak_week else "-"),
        "- Puncak pengeluaran bulanan klien: "
        + (f"{peak_month.month} ({format_rupiah(peak_month.expense)})" if peak_month else "-"),
        "Top kategori pengeluaran versi klien:",
        *(top_categories or ["Tidak ada."]),
        "",
        "Sampel transaksi klien terbaru:",
        *(tx_sample or ["Tidak ada."]),
        "",
        "Ringkasan harian klien (7 data terbaru):",
        *(daily_sample or ["Tidak ada."]),
        "",
        "Ringkasan mingguan klien:",
        *(weekly_sample or ["Tidak ada."]),
        "",
        "Ringkasan bulanan klien:",
        *(monthly_sample or ["Tidak ada."]),
    ]


def _largest_text(tx) -> str:
    if tx is None:
        return "-"
    return f"{format_rupiah(tx.amount)} ({tx.category}, {tx.date})"


def build_deep_insight_prompt(
    stats: MonthlyStats,
    payload: Optional[FinancialPayload] = None,
) -> str:
    """
    Build the full-detail insight prompt.

    Includes every headline figure, the top categories, weekly buckets, the
    raw transaction digests, the client snapshot block, numbered findings
    and directives, formatting rules and the JSON reply schema.
    """
    context = build_dynamic_context(stats)

    top_categories = _numbered(
        [f"{item.category}: {format_rupiah(item.amount)}" for item in stats.top_expense_categories]
    ) or ["Tidak ada kategori pengeluaran tercatat."]

    weekly_lines = [
        f"- Minggu {idx}: {format_rupiah(amount)}"
        for idx, amount in enumerate(stats.weekly_expense, start=1)
    ]

    transaction_lines = _numbered(
        [
            f"{tx.date} | {tx.type.value} | {tx.amount_rupiah} | {tx.category} | catatan: {tx.note or '-'}"
            for tx in stats.transactions_for_ai
        ]
    ) or ["Tidak ada transaksi."]

    lines = [
        f"Data keuangan pengguna untuk {stats.month} {stats.year}.",
        f"- Total pemasukan: {format_rupiah(stats.total_income)}",
        f"- Total pengeluaran: {format_rupiah(stats.total_expense)}",
        f"- Saldo bersih: {format_rupiah(stats.balance)}",
        f"- Jumlah transaksi: {stats.transaction_count} "
        f"(income: {stats.income_count}, expense: {stats.expense_count})",
        f"- Hari berjalan bulan ini: {stats.current_day} dari {stats.days_in_month} hari",
        f"- Hari aktif transaksi: {stats.active_days_count} hari",
        f"- Rata-rata pemasukan per transaksi: {format_rupiah(stats.average_income)}",
        f"- Rata-rata pengeluaran per transaksi: {format_rupiah(stats.average_expense)}",
        "- Rasio pengeluaran terhadap pemasukan: "
        f"{format_percentage(stats.expense_to_income_ratio)}",
        f"- Saving rate: {format_percentage(stats.saving_rate)}",
        f"- Proyeksi total pengeluaran akhir bulan: {format_rupiah(stats.projected_expense)}",
        f"- Proyeksi saldo akhir bulan: {format_rupiah(stats.projected_balance)}",
        "- Share kategori pengeluaran terbesar: "
        f"{format_percentage(stats.top_expense_category_share)}",
        f"- Arah tren pengeluaran terbaru: {stats.recent_expense_trend.value}",
        f"- Skor kesehatan finansial internal: {stats.health_score}/100 "
        f"({stats.health_status.value})",
        f"- Pengeluaran paruh awal bulan: {format_rupiah(stats.first_half_expense)}",
        f"- Pengeluaran paruh akhir bulan: {format_rupiah(stats.second_half_expense)}",
        f"- Transaksi pemasukan terbesar: {_largest_text(stats.max_income_tx)}",
        f"- Transaksi pengeluaran terbesar: {_largest_text(stats.max_expense_tx)}",
        "",
        "Top 3 kategori pengeluaran:",
        *top_categories,
        "",
        "Tren pengeluaran mingguan:",
        *weekly_lines,
        "",
        "Data transaksi mentah (gunakan ini untuk hitung dan validasi angka final):",
        *transaction_lines,
        "",
        *build_financial_payload_block(payload),
        "",
        "Temuan prioritas berbasis data (wajib kamu tanggapi):",
        *_numbered(context.findings),
        "",
        "Arah kritik dan saran (wajib diikuti):",
        *_numbered(context.directives),
        "",
        "Instruksi:",
        "1) Buat analisis mendalam, jelas, dan mudah dipahami untuk pengguna non-teknis.",
        "2) Wajib gunakan format Rupiah (contoh: Rp1.250.000) untuk SEMUA nominal uang.",
        "3) Dilarang menyebut mata uang lain seperti USD, dollar, euro, yen, "
        "atau symbol non-rupiah.",
        "4) Berikan saran yang sangat konkret, bisa dieksekusi, dan sertakan target "
        "angka/persentase serta rentang waktu.",
        "5) Fokus pada kualitas arus kas, efisiensi pengeluaran, prioritas perbaikan, "
        "dan proyeksi bulan depan.",
        "6) Gunakan format HTML sederhana agar mudah ditampilkan di UI.",
        "7) Tag yang diizinkan hanya: <p>, <strong>, <b>, <u>, <em>, <i>, <br>, <ul>, <ol>, <li>.",
        "8) Jangan gunakan tag/atribut lain (tidak boleh script, style, class, id, "
        "onclick, href, src).",
        "9) Hitung sendiri angka-angka utama dari data mentah, lalu tulis angka final "
        "secara eksplisit.",
        "10) Di setiap rekomendasi WAJIB ada target angka yang jelas "
        "(Rp, %, atau jumlah hari/minggu).",
        "11) Berikan kritik rasional: jelaskan masalah inti, akar penyebab, dampak 30 hari, "
        "dan tindakan korektif.",
        "12) Prioritaskan perbaikan berdampak tertinggi (prinsip 80/20), "
        "maksimal 3 fokus utama.",
        "13) Setiap item recommendations harus berformat: "
        "<strong>Aksi</strong> | target | tenggat | dampak.",
        "",
        "Balas HANYA dengan JSON valid tanpa markdown, format persis:",
        "{",
        '  "summary": "HTML string minimal 4-6 kalimat, gunakan <p> dan <strong> '
        'untuk highlight utama",',
        '  "recommendations": ["HTML string saran 1", "HTML string saran 2", '
        '"HTML string saran 3", "HTML string saran 4"],',
        '  "trend_analysis": "HTML string minimal 3-4 kalimat tentang arah tren, '
        'risiko utama, dan prioritas tindak lanjut",',
        '  "key_numbers": [',
        '    {"label":"string", "value":"string", "insight":"string"},',
        '    {"label":"string", "value":"string", "insight":"string"},',
        '    {"label":"string", "value":"string", "insight":"string"}',
        "  ]",
        "}",
    ]
    return "\n".join(lines)


def build_compact_insight_prompt(
    stats: MonthlyStats,
    payload: Optional[FinancialPayload] = None,
) -> str:
    """Condensed insight prompt for the second attempt."""
    context = build_dynamic_context(stats)

    lines = [
        f"Buat analisis keuangan bulanan untuk {stats.month} {stats.year}.",
        f"Pemasukan: {format_rupiah(stats.total_income)}.",
        f"Pengeluaran: {format_rupiah(stats.total_expense)}.",
        f"Saldo: {format_rupiah(stats.balance)}.",
        f"Rasio pengeluaran/pemasukan: {format_percentage(stats.expense_to_income_ratio)}.",
        f"Saving rate: {format_percentage(stats.saving_rate)}.",
        f"Proyeksi saldo akhir bulan: {format_rupiah(stats.projected_balance)}.",
        "Kategori pengeluaran terbesar: "
        f"{format_percentage(stats.top_expense_category_share)} dari total expense.",
        f"Status kesehatan finansial: {stats.health_status.value} ({stats.health_score}/100).",
        f"Total transaksi: {stats.transaction_count}.",
        "",
        "Fokus masalah prioritas:",
        *_numbered(context.findings),
        "",
        *build_financial_payload_block(payload),
        "",
        "Ketentuan jawaban:",
        "- Gunakan Bahasa Indonesia.",
        "- Semua nominal pakai Rupiah.",
        "- Gunakan HTML sederhana: <p>, <strong>, <u>, <em>, <br>, <ul>, <li>.",
        "- Rekomendasi harus spesifik, ada target angka dan waktu.",
        "- Berikan kritik rasional berdasarkan data, bukan saran umum.",
        "- Setiap rekomendasi format: Aksi | target | tenggat | dampak.",
        "",
        "Balas JSON valid tanpa markdown:",
        "{",
        '  "summary": "HTML string",',
        '  "recommendations": ["HTML string", "HTML string", "HTML string"],',
        '  "trend_analysis": "HTML string",',
        '  "key_numbers": [',
        '    {"label":"string", "value":"string", "insight":"string"},',
        '    {"label":"string", "value":"string", "insight":"string"}',
        "  ]",
        "}",
    ]
    return "\n".join(lines)


def build_forecast_prompt(points: Sequence[HistoryPoint], baseline: ForecastResult) -> str:
    """Forecast prompt: recent history, the statistical baseline and the reply schema."""
    history_lines = _numbered(
        [
            f"{format_month_year_label(p.month_index, p.year)} | income {format_rupiah(p.income)} "
            f"| expense {format_rupiah(p.expense)} | balance {format_rupiah(p.balance)}"
            for p in points[-FORECAST_HISTORY_LIMIT:]
        ]
    ) or ["-"]

    def _range(r) -> str:
        return f"{format_rupiah(r.min)} - {format_rupiah(r.max)}"

    lines = [
        "Berikut data histori summary bulanan user (maksimal 12 bulan terakhir):",
        *history_lines,
        "",
        "Baseline forecast statistik internal (boleh kamu koreksi jika ada alasan kuat):",
        f"- Prediksi income: {format_rupiah(baseline.predicted_income)}",
        f"- Prediksi expense: {format_rupiah(baseline.predicted_expense)}",
        f"- Prediksi balance: {format_rupiah(baseline.predicted_balance)}",
        f"- Range income: {_range(baseline.income_range)}",
        f"- Range expense: {_range(baseline.expense_range)}",
        f"- Range balance: {_range(baseline.balance_range)}",
        "",
        "Tugas:",
        "1) Buat forecast bulan depan dalam angka (income, expense, balance) yang masuk akal.",
        "2) Semua nilai uang wajib angka murni (tanpa Rp, tanpa titik pemisah).",
        "3) Berikan confidence 0-100.",
        "4) Berikan insight singkat maksimal 2 kalimat.",
        "5) Berikan 3 action_items yang konkret.",
        "",
        "Balas HANYA JSON valid tanpa markdown:",
        "{",
        '  "predicted_income": 0,',
        '  "predicted_expense": 0,',
        '  "predicted_balance": 0,',
        '  "income_range": {"min": 0, "max": 0},',
        '  "expense_range": {"min": 0, "max": 0},',
        '  "balance_range": {"min": 0, "max": 0},',
        '  "confidence": 0,',
        '  "insight": "string",',
        '  "action_items": ["string", "string", "string"]',
        "}",
    ]
    return "\n".join(lines)


__all__ = [
    "INSIGHT_SYSTEM_PROMPT",
    "FORECAST_SYSTEM_PROMPT",
    "PromptContext",
    "build_dynamic_context",
    "build_financial_payload_block",
    "build_deep_insight_prompt",
    "build_compact_insight_prompt",
    "build_forecast_prompt",
]
