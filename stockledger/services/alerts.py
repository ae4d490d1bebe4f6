"""Alert Composer - düşük stok ve yeniden sipariş bildirim içerikleri.

Yalnızca içerik üretir (konu, HTML, düz metin, yapısal bölümler). Gönderim
notifier'ın işidir.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from html import escape
from typing import Optional

from stockledger.models.inventory import InventoryItem, NotificationKind, NotificationPayload, ReorderSuggestion

STOCK_ALERT_ACTIONS = [
    "Tükenen kritik kalemleri inceleyip acil sipariş verin",
    "Düşük stoklu kalemler için sipariş planlayın",
    "Tedarikçilerle stok durumu ve teslim sürelerini teyit edin",
    "Gerekirse kullanım durumuna göre minimum eşikleri güncelleyin",
]

REORDER_NEXT_STEPS = [
    "Önerilen miktarları gözden geçirip gerekirse düzenleyin",
    "Tedarikçilerle stok ve fiyat teyidi alın",
    "Önce kritik kalemlerin siparişini verin",
    "Teslimat sonrası stok seviyelerini güncelleyin",
]

_STYLE = """
body { font-family: Arial, sans-serif; line-height: 1.6; color: #333; }
.header { background: #f8f9fa; padding: 20px; border-radius: 8px; margin-bottom: 20px; }
.section { margin: 20px 0; padding: 15px; border-radius: 8px; }
.critical { background: #fee; border-left: 4px solid #dc3545; }
.warning { background: #fff3cd; border-left: 4px solid #ffc107; }
table { width: 100%; border-collapse: collapse; margin: 10px 0; }
th, td { padding: 10px; text-align: left; border-bottom: 1px solid #ddd; }
th { background: #f8f9fa; }
.total-row { background: #f8f9fa; font-weight: bold; }
"""


class AlertComposer:
    """Durumsuz bildirim biçimlendirici."""

    def __init__(self, system_name: str = "Garaj Yönetim Sistemi", currency_symbol: str = "$"):
        self.system_name = system_name
        self.currency_symbol = currency_symbol

    def _money(self, value: Decimal) -> str:
        return f"{self.currency_symbol}{Decimal(value):.2f}"

    # --- Stok uyarısı ---

    def compose_stock_alert(
        self,
        low_stock_items: list[InventoryItem],
        out_of_stock_items: list[InventoryItem],
        now: Optional[datetime] = None,
    ) -> Optional[NotificationPayload]:
        """İki liste de boşsa gönderilecek bir şey yoktur, None döner."""
        total = len(low_stock_items) + len(out_of_stock_items)
        if total == 0:
            return None

        date_text = (now or datetime.utcnow()).strftime("%Y-%m-%d")
        sections = {
            "critical": [self._item_row(i) for i in out_of_stock_items],
            "warning": [self._item_row(i) for i in low_stock_items],
        }
        subject = f"Düşük Stok Uyarısı: {total} kalem ilgi bekliyor"

        html = [
            "<!DOCTYPE html><html><head><style>", _STYLE, "</style></head><body>",
            '<div class="header"><h1>Stok Uyarısı</h1>',
            f"<p><strong>Tarih:</strong> {date_text}</p>",
            f"<p><strong>İlgi bekleyen kalem:</strong> {total}</p></div>",
        ]
        text = [
            "STOK UYARISI",
            f"Tarih: {date_text}",
            f"İlgi bekleyen kalem: {total}",
            "",
        ]

        if out_of_stock_items:
            html.append(self._item_table(
                "critical", f"KRİTİK: Tükenen Kalemler ({len(out_of_stock_items)})",
                sections["critical"], "TÜKENDİ",
            ))
            text.append(f"KRİTİK: TÜKENEN KALEMLER ({len(out_of_stock_items)})")
            text.append("=" * 42)
            for row in sections["critical"]:
                text.append(
                    f"- {row['name']} ({row['category']}) - Tedarikçi: {row['supplier']} "
                    f"- Stok: {row['quantity']}/{row['min_threshold']} - Fiyat: {self._money(row['price'])}"
                )
            text.append("")

        if low_stock_items:
            html.append(self._item_table(
                "warning", f"UYARI: Düşük Stoklu Kalemler ({len(low_stock_items)})",
                sections["warning"], "DÜŞÜK",
            ))
            text.append(f"UYARI: DÜŞÜK STOKLU KALEMLER ({len(low_stock_items)})")
            text.append("=" * 42)
            for row in sections["warning"]:
                text.append(
                    f"- {row['name']} ({row['category']}) - Tedarikçi: {row['supplier']} "
                    f"- Stok: {row['quantity']}/{row['min_threshold']} - Fiyat: {self._money(row['price'])}"
                )
            text.append("")

        html.append(self._footer("Önerilen Adımlar", STOCK_ALERT_ACTIONS))
        html.append("</body></html>")
        text.append("Önerilen Adımlar:")
        text.extend(f"- {action}" for action in STOCK_ALERT_ACTIONS)
        text.append("")
        text.append(f"Bu uyarı {self.system_name} tarafından otomatik oluşturuldu.")

        return NotificationPayload(
            kind=NotificationKind.STOCK_ALERT,
            subject=subject,
            html_body="".join(html),
            text_body="\n".join(text),
            sections=sections,
            total_count=total,
        )

    # --- Yeniden sipariş önerisi ---

    def compose_reorder_suggestion(
        self,
        suggestions: list[ReorderSuggestion],
        now: Optional[datetime] = None,
    ) -> Optional[NotificationPayload]:
        if not suggestions:
            return None

        date_text = (now or datetime.utcnow()).strftime("%Y-%m-%d")
        rows = [
            {
                "item_id": s.item_id,
                "name": s.name,
                "category": s.category,
                "supplier": s.supplier,
                "current_quantity": s.current_quantity,
                "min_threshold": s.min_threshold,
                "suggested_qty": s.suggested_qty,
                "unit_price": s.unit_price,
                "line_cost": s.estimated_cost,
                "priority": s.priority.value,
            }
            for s in suggestions
        ]
        total_cost = sum((s.estimated_cost for s in suggestions), Decimal("0.00"))

        html = [
            "<!DOCTYPE html><html><head><style>", _STYLE, "</style></head><body>",
            '<div class="header"><h1>Yeniden Sipariş Önerileri</h1>',
            f"<p><strong>Tarih:</strong> {date_text}</p>",
            f"<p><strong>Sipariş edilecek kalem:</strong> {len(rows)}</p></div>",
            "<table><thead><tr><th>Kalem</th><th>Kategori</th><th>Tedarikçi</th>"
            "<th>Mevcut</th><th>Eşik</th><th>Önerilen</th><th>Birim Fiyat</th>"
            "<th>Tutar</th></tr></thead><tbody>",
        ]
        text = [
            "YENİDEN SİPARİŞ ÖNERİLERİ",
            f"Tarih: {date_text}",
            f"Sipariş edilecek kalem: {len(rows)}",
            "",
        ]
        for row in rows:
            html.append(
                f"<tr><td><strong>{escape(row['name'])}</strong></td>"
                f"<td>{escape(row['category'])}</td><td>{escape(row['supplier'])}</td>"
                f"<td>{row['current_quantity']}</td><td>{row['min_threshold']}</td>"
                f"<td><strong>{row['suggested_qty']}</strong></td>"
                f"<td>{self._money(row['unit_price'])}</td><td>{self._money(row['line_cost'])}</td></tr>"
            )
            text.append(f"- {row['name']} ({row['category']})")
            text.append(f"  Mevcut: {row['current_quantity']} | Eşik: {row['min_threshold']}")
            text.append(
                f"  Önerilen: {row['suggested_qty']} | Birim Fiyat: {self._money(row['unit_price'])}"
            )
            text.append(
                f"  Tedarikçi: {row['supplier']} | Tutar: {self._money(row['line_cost'])}"
            )
            text.append("")

        html.append(
            "</tbody><tfoot><tr class=\"total-row\"><td colspan=\"7\">Toplam Tahmini Maliyet:</td>"
            f"<td>{self._money(total_cost)}</td></tr></tfoot></table>"
        )
        html.append(self._footer("Sonraki Adımlar", REORDER_NEXT_STEPS))
        html.append("</body></html>")
        text.append(f"Toplam Tahmini Maliyet: {self._money(total_cost)}")
        text.append("")
        text.append("Sonraki Adımlar:")
        text.extend(f"- {step}" for step in REORDER_NEXT_STEPS)

        return NotificationPayload(
            kind=NotificationKind.REORDER_SUGGESTION,
            subject=f"Yeniden Sipariş Önerileri: {len(rows)} kalem",
            html_body="".join(html),
            text_body="\n".join(text),
            sections={"suggestions": rows},
            total_count=len(rows),
            total_cost=total_cost,
        )

    # --- Yardımcılar ---

    @staticmethod
    def _item_row(item: InventoryItem) -> dict:
        return {
            "item_id": item.item_id,
            "name": item.name,
            "category": item.category,
            "supplier": item.supplier,
            "quantity": item.quantity,
            "min_threshold": item.min_threshold,
            "price": item.price,
        }

    def _item_table(self, css_class: str, title: str, rows: list[dict], badge: str) -> str:
        parts = [
            f'<div class="section {css_class}"><h2>{escape(title)}</h2>',
            "<table><thead><tr><th>Kalem</th><th>Kategori</th><th>Tedarikçi</th>"
            "<th>Mevcut Stok</th><th>Min. Eşik</th><th>Birim Fiyat</th><th>Durum</th>"
            "</tr></thead><tbody>",
        ]
        for row in rows:
            parts.append(
                f"<tr><td><strong>{escape(row['name'])}</strong></td>"
                f"<td>{escape(row['category'])}</td><td>{escape(row['supplier'])}</td>"
                f"<td>{row['quantity']}</td><td>{row['min_threshold']}</td>"
                f"<td>{self._money(row['price'])}</td><td>{badge}</td></tr>"
            )
        parts.append("</tbody></table></div>")
        return "".join(parts)

    def _footer(self, title: str, lines: list[str]) -> str:
        items = "".join(f"<li>{escape(line)}</li>" for line in lines)
        return (
            f'<div class="header"><h3>{escape(title)}:</h3><ul>{items}</ul>'
            f"<p><em>Bu bildirim {escape(self.system_name)} tarafından otomatik oluşturuldu.</em></p></div>"
        )
