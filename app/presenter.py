"""Result views: technical report, offer with prices, client email.

View builders are pure functions over an AnalysisResult. ``render_page``
turns a session snapshot into the HTML page served to the browser.
"""
from __future__ import annotations
from enum import Enum
from html import escape
from typing import Any, Dict, List

from app.schemas import AnalysisResult


class View(str, Enum):
    technical = "technical"
    offer = "offer"
    email = "email"


DEFAULT_VIEW = View.technical

VIEW_LABELS = {
    View.technical: "Analiza Techniczna",
    View.offer: "Oferta i Ceny",
    View.email: "Wiadomość E-mail",
}

PRICE_DISCLAIMER = (
    "Ceny mają charakter poglądowy i mogą ulec zmianie w zależności od dostępności i dystrybutora."
)
PRICE_TOTAL_LABEL = "Suma szacunkowa"
PRICE_TOTAL_VALUE = "Wycena indywidualna"


def price_line(item: str, price: str) -> str:
    return f"{item} — {price}"


def technical_view(result: AnalysisResult) -> Dict[str, Any]:
    return {
        "title": result.title,
        "description": result.description,
        "details": list(result.details),
        "technical_assessment": result.technical_assessment,
        "build_quality": result.build_quality,
        "standards_compliance": result.standards_compliance,
        "components": [
            {"name": c.name, "type": c.type, "description": c.description}
            for c in result.components
        ],
    }


def offer_view(result: AnalysisResult) -> Dict[str, Any]:
    # Prices stay display strings; no total is computed.
    return {
        "key_points": list(result.offer.key_points),
        "recommendations": list(result.offer.recommendations),
        "prices": [
            {"item": p.item, "price": p.price, "source": p.source, "line": price_line(p.item, p.price)}
            for p in result.price_estimates
        ],
        "total_label": PRICE_TOTAL_LABEL,
        "total_value": PRICE_TOTAL_VALUE,
        "disclaimer": PRICE_DISCLAIMER,
    }


def email_view(result: AnalysisResult) -> Dict[str, Any]:
    return {"email_draft": result.email_draft}


_BUILDERS = {
    View.technical: technical_view,
    View.offer: offer_view,
    View.email: email_view,
}


def present(result: AnalysisResult, preview_url: str, view: View = DEFAULT_VIEW) -> Dict[str, Any]:
    """Active view plus the parts shown regardless of the selected tab."""
    return {
        "view": view.value,
        "preview_url": preview_url,
        "safety_clause": result.safety_clause,
        "content": _BUILDERS[view](result),
    }


# --- HTML -------------------------------------------------------------------

_STYLE = """
body{font-family:system-ui,sans-serif;background:#f8fafc;margin:0;color:#0f172a}
header{background:#0f172a;color:#fff;padding:16px 32px;font-weight:700}
main{max-width:1100px;margin:32px auto;padding:0 16px}
.card{background:#fff;border:1px solid #e2e8f0;border-radius:16px;padding:24px;margin-bottom:16px}
.error{background:#fef2f2;color:#b91c1c;border-color:#fecaca}
.safety{background:#fffbeb;border-color:#fde68a;font-size:12px}
.tabs button{padding:8px 16px;border:0;background:none;cursor:pointer}
.tabs button.active{border-bottom:2px solid #2563eb;color:#2563eb;font-weight:700}
img.preview{max-width:100%;max-height:400px;border-radius:12px}
pre.email{white-space:pre-wrap;background:#f8fafc;padding:16px;border-radius:12px}
table{width:100%;border-collapse:collapse}td,th{text-align:left;padding:8px;border-bottom:1px solid #f1f5f9}
"""

_SCRIPT = """
async function post(path, body){
  const opts = {method:'POST'};
  if (body instanceof FormData) opts.body = body;
  else if (body) {opts.body = JSON.stringify(body); opts.headers = {'Content-Type':'application/json'};}
  await fetch(path, opts); location.reload();
}
function copyEmail(){
  navigator.clipboard.writeText(document.getElementById('email-draft').textContent);
}
"""


def _list(items: List[str]) -> str:
    return "<ul>" + "".join(f"<li>{escape(i)}</li>" for i in items) + "</ul>"


def _technical_html(content: Dict[str, Any]) -> str:
    rows = "".join(
        f"<tr><td>{escape(c['name'])}</td><td>{escape(c['type'])}</td><td>{escape(c['description'])}</td></tr>"
        for c in content["components"]
    )
    return (
        f"<h2>{escape(content['title'])}</h2>"
        f"<p>{escape(content['description'])}</p>"
        f"{_list(content['details'])}"
        f"<h3>Ocena Techniczna</h3><p>{escape(content['technical_assessment'])}</p>"
        f"<h3>Jakość wykonania</h3><p>{escape(content['build_quality'])}</p>"
        f"<h3>Normy i Zgodność</h3><p>{escape(content['standards_compliance'])}</p>"
        "<h3>Zidentyfikowane komponenty</h3>"
        "<table><thead><tr><th>Nazwa/Model</th><th>Typ</th><th>Funkcja/Stan</th></tr></thead>"
        f"<tbody>{rows}</tbody></table>"
    )


def _offer_html(content: Dict[str, Any]) -> str:
    prices = "".join(
        f"<tr><td>{escape(p['line'])}</td>"
        f"<td>{escape(p['source'] or '')}</td></tr>"
        for p in content["prices"]
    )
    return (
        "<h3>Nasza Oferta</h3>"
        f"{_list(content['key_points'])}"
        "<h3>Rekomendacje inżynierskie</h3>"
        f"{_list(content['recommendations'])}"
        "<h3>Szacunkowe Ceny</h3>"
        f"<table><tbody>{prices}"
        f"<tr><td>{escape(content['total_label'])}</td><td><strong>{escape(content['total_value'])}</strong></td></tr>"
        "</tbody></table>"
        f"<p><em>{escape(content['disclaimer'])}</em></p>"
    )


def _email_html(content: Dict[str, Any]) -> str:
    return (
        "<h3>Gotowy szkic wiadomości</h3>"
        '<button onclick="copyEmail()">Kopiuj treść</button>'
        f'<pre class="email" id="email-draft">{escape(content["email_draft"])}</pre>'
    )


_VIEW_HTML = {
    View.technical: _technical_html,
    View.offer: _offer_html,
    View.email: _email_html,
}


def _intake_html(base: str, state: Dict[str, Any]) -> str:
    status = state["status"]
    parts = ['<div class="card">']
    if status == "empty":
        parts.append(
            "<h3>Analiza Dokumentacji Obrazowej</h3>"
            "<p>Prześlij zdjęcie rozdzielnicy elektrycznej, aby otrzymać audyt techniczny, wycenę i gotową ofertę.</p>"
            f"<form onsubmit=\"event.preventDefault();post('{base}/image', new FormData(this))\">"
            '<input type="file" name="file" accept="image/*"> <button type="submit">Wgraj</button></form>'
        )
    else:
        parts.append(f'<img class="preview" src="{escape(state["preview_url"])}" alt="Preview">')
        if status == "in_flight":
            parts.append("<p><strong>Asystent AI analizuje zabezpieczenia...</strong></p>")
        else:
            parts.append(
                f"<p><button onclick=\"post('{base}/analyze')\">Generuj Raport AI</button> "
                f"<button onclick=\"post('{base}/reset')\">Usuń zdjęcie</button></p>"
            )
    parts.append("</div>")
    if state.get("error"):
        parts.append(f'<div class="card error">{escape(state["error"])}</div>')
    return "".join(parts)


def _result_html(base: str, state: Dict[str, Any]) -> str:
    presentation = state["presentation"]
    active = View(presentation["view"])
    tabs = "".join(
        f"<button class=\"{'active' if v is active else ''}\" "
        f"onclick=\"post('{base}/view', {{view:'{v.value}'}})\">{escape(VIEW_LABELS[v])}</button>"
        for v in View
    )
    return (
        '<div class="card">'
        f'<img class="preview" src="{escape(presentation["preview_url"])}" alt="Analyzed content">'
        f"<p><button onclick=\"post('{base}/reset')\">Wgraj nową dokumentację</button></p>"
        "</div>"
        f'<div class="card safety">{escape(presentation["safety_clause"])}</div>'
        f'<div class="card"><div class="tabs">{tabs}</div>{_VIEW_HTML[active](presentation["content"])}</div>'
    )


def render_page(state: Dict[str, Any]) -> str:
    base = f"/v1/sessions/{state['session_id']}"
    body = _result_html(base, state) if state["status"] == "ready" else _intake_html(base, state)
    return (
        "<!DOCTYPE html><html lang=\"pl\"><head><meta charset=\"utf-8\">"
        f"<title>Asystent Elektryka AI</title><style>{_STYLE}</style><script>{_SCRIPT}</script></head>"
        f"<body><header>Asystent Elektryka AI</header><main>{body}</main></body></html>"
    )
