"""Email content for every notification HomeFix sends.

Each builder returns a MailMessage with a plain-text body and an HTML body
sharing the same wrapper. User-provided values are escaped before they reach HTML.
"""

from datetime import datetime
from html import escape
from typing import Optional

from app.config import get_settings
from app.domain.models.maintenance_request import MaintenanceRequest
from app.domain.models.user import User
from app.domain.schemas.notification import MailMessage

settings = get_settings()

PRIMARY_COLOR = "#ff7a00"
SIGNATURE = ["", "Atenciosamente,", "Equipa HomeFix"]


def _name(user: Optional[User], fallback: str = "Utilizador") -> str:
    if user is None:
        return fallback
    return user.full_name or fallback


def _link(path: str) -> str:
    return f"{settings.APP_URL.rstrip('/')}{path}"


def _fmt_date(value: Optional[datetime]) -> str:
    return value.strftime("%d/%m/%Y %H:%M") if value else "—"


def _html(title: str, paragraphs: list[str], color: str = PRIMARY_COLOR) -> str:
    body = "\n".join(f"<p>{p}</p>" for p in paragraphs)
    return (
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>"
        "<body style=\"font-family: Arial, sans-serif; background: #f9fafb; color: #1f2937;\">"
        "<div style=\"max-width: 600px; margin: 0 auto; background: #ffffff;\">"
        f"<div style=\"background: {color}; color: #ffffff; padding: 32px; text-align: center;\">"
        f"<h2 style=\"margin: 0;\">{escape(title)}</h2></div>"
        f"<div style=\"padding: 32px;\">{body}"
        "<p style=\"color: #6b7280; font-size: 13px;\">Equipa HomeFix</p></div>"
        "</div></body></html>"
    )


def welcome_email(user: User) -> MailMessage:
    name = _name(user)
    text = "\n".join([
        f"Olá {name},",
        "",
        "A sua conta HomeFix foi criada com sucesso.",
        f"Pode criar o primeiro pedido de manutenção em {_link('/new-request')}.",
        *SIGNATURE,
    ])
    html = _html("Bem-vindo à HomeFix", [
        f"Olá <strong>{escape(name)}</strong>,",
        "A sua conta HomeFix foi criada com sucesso.",
        f"<a href=\"{_link('/new-request')}\">Criar o primeiro pedido</a>",
    ])
    return MailMessage(to=[user.email], subject="Bem-vindo à HomeFix", text=text, html=html)


def password_reset_email(user: User, token: str) -> MailMessage:
    link = _link(f"/reset-password?token={token}")
    minutes = settings.PASSWORD_RESET_EXPIRATION_MINUTES
    text = "\n".join([
        f"Olá {_name(user)},",
        "",
        "Recebemos um pedido para redefinir a sua palavra-passe.",
        f"Use o link seguinte (válido durante {minutes} minutos): {link}",
        "",
        "Se não foi você, ignore este email.",
        *SIGNATURE,
    ])
    html = _html("Redefinir palavra-passe", [
        f"Olá <strong>{escape(_name(user))}</strong>,",
        "Recebemos um pedido para redefinir a sua palavra-passe.",
        f"<a href=\"{escape(link)}\">Redefinir palavra-passe</a> (válido durante {minutes} minutos)",
        "Se não foi você, ignore este email.",
    ])
    return MailMessage(to=[user.email], subject="Redefinir palavra-passe - HomeFix", text=text, html=html)


def password_changed_email(user: User) -> MailMessage:
    text = "\n".join([
        f"Olá {_name(user)},",
        "",
        "A sua palavra-passe foi alterada com sucesso.",
        "Se não foi você, contacte-nos imediatamente.",
        *SIGNATURE,
    ])
    html = _html("Palavra-passe alterada", [
        f"Olá <strong>{escape(_name(user))}</strong>,",
        "A sua palavra-passe foi alterada com sucesso.",
        "Se não foi você, contacte-nos imediatamente.",
    ], color="#10b981")
    return MailMessage(to=[user.email], subject="Palavra-passe alterada - HomeFix", text=text, html=html)


def profile_updated_email(user: User) -> MailMessage:
    text = "\n".join([
        f"Olá {_name(user)},",
        "",
        "Confirmamos que o seu perfil foi atualizado com sucesso na HomeFix.",
        "",
        "Se não foi você quem realizou esta alteração, por favor contacte-nos imediatamente.",
        *SIGNATURE,
    ])
    html = _html("Perfil Atualizado", [
        f"Olá <strong>{escape(_name(user))}</strong>,",
        "<strong>Perfil atualizado com sucesso!</strong>",
        "Se não foi você quem realizou esta alteração, por favor contacte-nos imediatamente.",
    ], color="#007bff")
    return MailMessage(to=[user.email], subject="Perfil atualizado - HomeFix", text=text, html=html)


def account_deleted_email(email: str, name: str) -> MailMessage:
    text = "\n".join([
        f"Olá {name},",
        "",
        "Confirmamos que a sua conta na HomeFix foi eliminada com sucesso.",
        "",
        "Todos os seus dados pessoais, pedidos e informações associadas foram permanentemente removidos.",
        "",
        "Obrigado por ter usado os nossos serviços.",
        *SIGNATURE,
    ])
    html = _html("HomeFix - Conta Eliminada", [
        f"Olá <strong>{escape(name)}</strong>,",
        "Confirmamos que a sua conta na HomeFix foi eliminada com sucesso.",
        "Dados pessoais, pedidos, mensagens e avaliações foram permanentemente removidos.",
        "Obrigado por ter usado os nossos serviços.",
    ], color="#6c757d")
    return MailMessage(to=[email], subject="Conta eliminada - HomeFix", text=text, html=html)


def new_request_email(request: MaintenanceRequest, owner: User, recipients: list[str]) -> MailMessage:
    lines = [
        "Novo pedido de orçamento disponível no HomeFix.",
        f"Título: {request.title}",
        f"Categoria: {request.category}",
        f"Cliente: {_name(owner, 'Cliente')} ({owner.email})",
    ]
    if request.scheduled_at:
        lines.append(f"Data preferencial: {_fmt_date(request.scheduled_at)}")
    lines.append(f"Descrição: {request.description}")
    if request.media_urls:
        lines.append("Existem anexos associados ao pedido.")
    lines.append(f"Revise o pedido em: {_link('/dashboard')}")

    paragraphs = [
        "Existe um novo pedido de orçamento disponível no HomeFix.",
        f"<strong>Título:</strong> {escape(request.title)}<br>"
        f"<strong>Categoria:</strong> {escape(request.category)}<br>"
        f"<strong>Cliente:</strong> {escape(_name(owner, 'Cliente'))}",
        escape(request.description),
    ]
    if request.media_urls:
        links = "".join(f"<li><a href=\"{escape(url)}\">{escape(url)}</a></li>" for url in request.media_urls)
        paragraphs.append(f"<strong>Anexos:</strong><ul>{links}</ul>")
    paragraphs.append(f"<a href=\"{_link('/dashboard')}\">Abrir painel para responder ao pedido</a>")

    return MailMessage(
        to=recipients,
        subject=f"Novo pedido de orçamento: {request.title}",
        text="\n".join(lines),
        html=_html("Novo pedido", paragraphs),
    )


def request_accepted_emails(request: MaintenanceRequest) -> list[MailMessage]:
    """One message for the technician, one for the client."""
    chat_link = _link(f"/chat?requestId={request.id}")
    technician, owner = request.technician, request.owner
    messages = []
    if technician is not None:
        messages.append(MailMessage(
            to=[technician.email],
            subject=f"Pedido aceite: {request.title}",
            text="\n".join([
                f"Olá {_name(technician, 'técnico')},",
                "",
                f"Confirmamos que aceitou o pedido \"{request.title}\" ({request.category}).",
                f"Fale com o cliente em: {chat_link}",
                *SIGNATURE,
            ]),
            html=_html("Pedido aceite", [
                f"Olá {escape(_name(technician, 'técnico'))},",
                f"Confirmamos que aceitou o pedido <strong>{escape(request.title)}</strong> ({escape(request.category)}).",
                f"<a href=\"{chat_link}\">Abrir chat com o cliente</a>",
            ]),
        ))
    if owner is not None and technician is not None:
        messages.append(MailMessage(
            to=[owner.email],
            subject=f"O seu pedido foi aceite: {request.title}",
            text="\n".join([
                f"Olá {_name(owner, 'cliente')},",
                "",
                f"O técnico {_name(technician, technician.email)} aceitou o pedido \"{request.title}\".",
                f"Acompanhe o trabalho e converse com o técnico em: {chat_link}",
                *SIGNATURE,
            ]),
            html=_html("Pedido aceite", [
                f"Olá {escape(_name(owner, 'cliente'))},",
                f"O técnico <strong>{escape(_name(technician, technician.email))}</strong> aceitou o pedido "
                f"<strong>{escape(request.title)}</strong>.",
                f"<a href=\"{chat_link}\">Abrir chat com o técnico</a>",
            ]),
        ))
    return messages


def visit_reminder_body(request: MaintenanceRequest, recipient: User) -> tuple[str, str]:
    subject = f"Lembrete: {request.title} agendado para {_fmt_date(request.scheduled_at)}"
    body = "\n".join([
        f"Olá {_name(recipient)},",
        "",
        f"Lembramos que o serviço \"{request.title}\" ({request.category}) está agendado para "
        f"{_fmt_date(request.scheduled_at)}.",
        f"Detalhes e chat: {_link(f'/chat?requestId={request.id}')}",
        *SIGNATURE,
    ])
    return subject, body


def feedback_invitation_body(request: MaintenanceRequest, owner: User) -> tuple[str, str]:
    subject = f"Como correu? Avalie o serviço \"{request.title}\""
    body = "\n".join([
        f"Olá {_name(owner, 'cliente')},",
        "",
        f"O pedido \"{request.title}\" foi concluído.",
        f"Deixe a sua avaliação em: {_link('/dashboard')}",
        *SIGNATURE,
    ])
    return subject, body
