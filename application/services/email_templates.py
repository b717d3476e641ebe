"""
Transactional email bodies (pt-BR).

Each builder returns an EmailMessage ready for the dispatcher; values are
HTML-escaped before they are substituted into the layout.
"""
from __future__ import annotations

from html import escape
from string import Template
from typing import Iterable, Optional

from application.dtos.checkout import DeliverableLink
from application.dtos.notifications import EmailKind, EmailMessage


FOOTER_TEXT = "© 2026 SellPay. Todos os direitos reservados."

_GREEN = "#059669 0%, #047857 100%"
_AMBER = "#f59e0b 0%, #d97706 100%"
_BLUE = "#3b82f6 0%, #2563eb 100%"

_LAYOUT = Template("""<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
</head>
<body style="margin: 0; padding: 0; font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif; background-color: #f4f4f5;">
    <div style="max-width: 600px; margin: 0 auto; padding: 40px 20px;">
        <div style="background: white; border-radius: 16px; overflow: hidden; box-shadow: 0 4px 6px rgba(0, 0, 0, 0.1);">
            <div style="background: linear-gradient(135deg, $gradient); padding: 32px; text-align: center;">
                <h1 style="color: white; margin: 0; font-size: 24px;">$title</h1>
            </div>
            <div style="padding: 32px; text-align: center;">
$content
            </div>
            <div style="background: #f9fafb; padding: 24px; text-align: center; border-top: 1px solid #e5e7eb;">
$footer_extra                <p style="color: #9ca3af; font-size: 12px; margin: 0;">$footer</p>
            </div>
        </div>
    </div>
</body>
</html>
""")

_BUTTON = Template(
    '                <a href="$url" style="display: inline-block; background: linear-gradient(135deg, '
    + _GREEN
    + '); color: white; padding: 16px 32px; border-radius: 12px; text-decoration: none; '
    'font-weight: 600; font-size: 16px; margin-top: 24px;">$label</a>\n'
)


def format_brl(cents: int) -> str:
    """9700 -> 'R$ 97,00'; 123456 -> 'R$ 1.234,56'."""
    sign = "-" if cents < 0 else ""
    reais, centavos = divmod(abs(int(cents)), 100)
    grouped = f"{reais:,}".replace(",", ".")
    return f"{sign}R$ {grouped},{centavos:02d}"


def _first_name(name: str) -> str:
    parts = (name or "").split()
    return parts[0] if parts else (name or "")


def _paragraph(text: str, *, size: int = 15, color: str = "#6b7280") -> str:
    return f'                <p style="color: {color}; font-size: {size}px; margin: 0 0 24px;">{text}</p>\n'


def _greeting(customer_name: str, prefix: str = "Olá") -> str:
    return _paragraph(f"{prefix} <strong>{escape(_first_name(customer_name))}</strong>,", size=16, color="#374151")


def _render(*, gradient: str, title: str, content: str, footer_extra: str = "") -> str:
    return _LAYOUT.substitute(
        gradient=gradient,
        title=title,
        content=content,
        footer_extra=footer_extra,
        footer=FOOTER_TEXT,
    )


def _button(url: str, label: str) -> str:
    return _BUTTON.substitute(url=escape(url, quote=True), label=escape(label))


def pix_generated_email(*, to: str, customer_name: str, product_name: str, amount: int, pix_code: str) -> EmailMessage:
    product = escape(product_name)
    content = (
        _greeting(customer_name)
        + _paragraph(f"Seu PIX para pagamento do produto <strong>{product}</strong> foi gerado!")
        + '                <div style="background: #f0fdf4; border: 2px solid #059669; border-radius: 12px; padding: 24px; margin-bottom: 24px;">\n'
        + '                    <p style="color: #6b7280; font-size: 14px; margin: 0 0 8px;">Valor a pagar:</p>\n'
        + f'                    <p style="color: #059669; font-size: 32px; font-weight: bold; margin: 0;">{format_brl(amount)}</p>\n'
        + "                </div>\n"
        + '                <div style="background: #f9fafb; border-radius: 12px; padding: 20px; margin-bottom: 24px; text-align: left;">\n'
        + '                    <p style="color: #374151; font-size: 14px; font-weight: 600; margin: 0 0 12px;">Código PIX Copia e Cola:</p>\n'
        + f'                    <code style="font-size: 12px; color: #6b7280; word-break: break-all;">{escape(pix_code)}</code>\n'
        + "                </div>\n"
        + _paragraph("Abra o app do seu banco e escaneie o QR Code ou cole o código acima.", size=14, color="#9ca3af")
    )
    return EmailMessage(
        to=to,
        subject=f"🔔 PIX Gerado - {product_name}",
        html=_render(gradient=_GREEN, title="PIX Gerado com Sucesso! 💰", content=content),
        kind=EmailKind.PIX_GENERATED.value,
    )


def purchase_approved_email(
    *,
    to: str,
    customer_name: str,
    product_name: str,
    amount: int,
    deliverables: Iterable[DeliverableLink] = (),
) -> EmailMessage:
    product = escape(product_name)
    links = [d for d in deliverables if d.url]
    if len(links) > 1:
        buttons = "".join(_button(d.url, f"{d.label} {i}") for i, d in enumerate(links, start=1))
    else:
        buttons = "".join(_button(d.url, d.label) for d in links)
    if not buttons:
        buttons = _paragraph("Em breve você receberá mais informações sobre seu acesso.", size=14, color="#9ca3af")
    content = (
        _paragraph(
            f"Parabéns, <strong>{escape(_first_name(customer_name))}</strong>! 🎉", size=18, color="#374151"
        )
        + _paragraph("Seu pagamento foi confirmado com sucesso.")
        + '                <div style="background: #f9fafb; border-radius: 12px; padding: 24px; text-align: left; margin-bottom: 24px;">\n'
        + '                    <h3 style="color: #374151; font-size: 14px; margin: 0 0 16px; text-transform: uppercase;">Resumo da Compra</h3>\n'
        + f'                    <p style="color: #6b7280; margin: 0 0 12px;">Produto: <strong style="color: #374151;">{product}</strong></p>\n'
        + f'                    <p style="color: #6b7280; margin: 0;">Valor pago: <strong style="color: #059669;">{format_brl(amount)}</strong></p>\n'
        + "                </div>\n"
        + buttons
    )
    footer_extra = '                <p style="color: #9ca3af; font-size: 12px; margin: 0 0 8px;">Dúvidas? Responda este email que ajudaremos você.</p>\n'
    return EmailMessage(
        to=to,
        subject=f"✅ Compra Aprovada - {product_name}",
        html=_render(gradient=_GREEN, title="Pagamento Confirmado!", content=content, footer_extra=footer_extra),
        kind=EmailKind.PURCHASE_APPROVED.value,
    )


def pix_expired_email(*, to: str, customer_name: str, product_name: str, checkout_url: str) -> EmailMessage:
    product = escape(product_name)
    content = (
        _greeting(customer_name)
        + _paragraph(f"O PIX para pagamento do produto <strong>{product}</strong> expirou antes de ser pago.")
        + _paragraph("Não se preocupe! Você pode gerar um novo PIX a qualquer momento.")
        + _button(checkout_url, "Tentar Novamente")
    )
    return EmailMessage(
        to=to,
        subject=f"⏰ PIX Expirado - {product_name}",
        html=_render(gradient=_AMBER, title="PIX Expirado ⏰", content=content),
        kind=EmailKind.PIX_EXPIRED.value,
    )


def abandoned_cart_email(*, to: str, customer_name: str, product_name: str, checkout_url: str) -> EmailMessage:
    product = escape(product_name)
    content = (
        _greeting(customer_name)
        + _paragraph(f"Notamos que você iniciou a compra de <strong>{product}</strong> mas não finalizou.")
        + _paragraph("Seu carrinho está salvo e esperando por você. Clique abaixo para retomar de onde parou:")
        + _button(checkout_url, "Finalizar Compra Agora")
    )
    return EmailMessage(
        to=to,
        subject=f"🛒 Seu carrinho está te esperando - {product_name}",
        html=_render(gradient=_BLUE, title="Não perca essa oportunidade! 🛒", content=content),
        kind=EmailKind.ABANDONED_CART.value,
    )


def recovery_email(
    kind: EmailKind, *, to: str, customer_name: str, product_name: str, checkout_url: str
) -> Optional[EmailMessage]:
    if kind == EmailKind.PIX_EXPIRED:
        return pix_expired_email(to=to, customer_name=customer_name, product_name=product_name, checkout_url=checkout_url)
    if kind == EmailKind.ABANDONED_CART:
        return abandoned_cart_email(to=to, customer_name=customer_name, product_name=product_name, checkout_url=checkout_url)
    return None
