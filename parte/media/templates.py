from datetime import date, datetime
from html import escape
from string import Template

NOTICE_TEMPLATE = Template(
    """<!DOCTYPE html>
<html>
<head>
<meta charset="utf-8">
<title>Oznámení úmrtí - $full_name</title>
<style>
body { font-family: sans-serif; }
h1 { text-align: center; font-size: 28px; border-bottom: 2px solid #333; padding-bottom: 10px; }
.info { margin: 20px 0; line-height: 1.8; }
.label { font-weight: bold; }
.footer { margin-top: 40px; text-align: center; font-size: 12px; color: #666; }
</style>
</head>
<body>
<h1>PARTE</h1>
<div class="info">
<p><span class="label">Jméno:</span> $full_name</p>
$funeral_line
<p><span class="label">Zdroj:</span> $source</p>
</div>
<div class="footer">
<p>Staženo: $downloaded_at<br>Hash: $notice_hash</p>
</div>
</body>
</html>
"""
)


def render_notice_html(
    *,
    full_name: str,
    funeral_date: date | None,
    source: str,
    notice_hash: str | None,
    downloaded_at: datetime,
) -> str:
    """HTML stand-in document for notices that come without a PDF or image."""
    funeral_line = ""
    if funeral_date is not None:
        funeral_line = (
            '<p><span class="label">Datum pohřbu:</span> '
            f"{funeral_date.strftime('%d. %m. %Y')}</p>"
        )
    return NOTICE_TEMPLATE.substitute(
        full_name=escape(full_name),
        funeral_line=funeral_line,
        source=escape(source),
        downloaded_at=downloaded_at.strftime("%d. %m. %Y %H:%M"),
        notice_hash=escape(notice_hash or "N/A"),
    )
