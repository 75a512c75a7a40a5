"""Render a shared link as an HTML or plain-text block for a message body."""

from html import escape

from dropbox_linker.models import LinkResult
from dropbox_linker.utils.formatting import human_readable_size

BLOCK_LABEL = "Dropbox link"
ACTION_TEXT = "Open"

# Table layout with inline styles renders consistently across mail clients
_HTML_TEMPLATE = """<table role="presentation" cellpadding="0" cellspacing="0" width="100%" style="max-width:520px;border:1px solid #d9d9d9;border-radius:8px;">
  <tr>
    <td style="padding:12px 14px;font-family:Arial, Helvetica, sans-serif;">
      <div style="font-size:12px;letter-spacing:0.4px;color:#6b6b6b;text-transform:uppercase;">{label}</div>
      <div style="font-size:16px;color:#111;margin-top:6px;line-height:1.2;"><strong>{name}</strong></div>
      <div style="font-size:12px;color:#6b6b6b;margin-top:4px;">{size}</div>
      <div style="margin-top:10px;">
        <a href="{url}" style="display:inline-block;text-decoration:none;padding:8px 12px;border:1px solid #111;border-radius:6px;color:#111;font-size:13px;">{action}</a>
      </div>
    </td>
  </tr>
</table>"""


def build_html_block(link: LinkResult, size_bytes: int) -> str:
    return _HTML_TEMPLATE.format(
        label=BLOCK_LABEL,
        name=escape(link.display_name or "", quote=False),
        size=escape(human_readable_size(size_bytes), quote=False),
        url=escape(link.url or "", quote=True),
        action=ACTION_TEXT,
    )


def build_plain_text_block(link: LinkResult, size_bytes: int) -> str:
    return f"{BLOCK_LABEL}\n{link.display_name} ({human_readable_size(size_bytes)})\n{ACTION_TEXT}: {link.url}\n"
