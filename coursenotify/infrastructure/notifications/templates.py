# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""HTML and plain text rendering for notification emails.

All interpolated values are escaped; notification text is plain text
and never carries markup of its own.
"""

from html import escape

DEFAULT_CTA_TEXT = "Go to Dashboard"


def render_email_html(
    heading: str,
    subheading: str,
    body: str,
    *,
    app_name: str,
    cta_url: str,
    support_email: str,
    cta_text: str = DEFAULT_CTA_TEXT,
) -> str:
    """Render the branded HTML email body.

    Args:
        heading: Large heading shown in the banner.
        subheading: Line under the heading.
        body: Message text; newlines become line breaks.
        app_name: Product name shown in the header and sign-off.
        cta_url: Target of the call-to-action button.
        support_email: Contact address shown in the footer.
        cta_text: Label of the call-to-action button.

    Returns:
        Complete HTML document.
    """
    heading_html = escape(heading)
    subheading_html = escape(subheading)
    body_html = escape(body).replace("\n", "<br>")
    app_html = escape(app_name)
    support_html = escape(support_email)

    html = f"""
<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <meta name="viewport" content="width=device-width, initial-scale=1.0">
    <title>{heading_html}</title>
</head>
<body style="margin: 0; padding: 0; background-color: #f2f2f2; font-family: Arial, sans-serif;">
    <table width="100%" border="0" cellspacing="0" cellpadding="0" bgcolor="#f2f2f2">
        <tr>
            <td align="center" style="padding: 30px 15px;">
                <table width="600" border="0" cellspacing="0" cellpadding="0"
                       style="background-color: #ffffff; border: 8px solid #d9d9d9;">

                    <!-- Header -->
                    <tr>
                        <td style="padding: 20px; font-size: 20px; font-weight: bold;">
                            {app_html}
                        </td>
                    </tr>

                    <!-- Banner -->
                    <tr>
                        <td style="background-color: #625A96; color: #ffffff; padding: 40px;">
                            <h1 style="margin: 0; font-size: 30px; font-weight: bold;">{heading_html}</h1>
                            <p style="margin: 15px 0 0; font-size: 20px;">{subheading_html}</p>
                        </td>
                    </tr>

                    <!-- Content -->
                    <tr>
                        <td style="padding: 40px 50px; color: #333333; font-size: 16px; line-height: 28px;">
                            <p style="margin: 0 0 15px 0;">{body_html}</p>

                            <div style="margin: 30px 0;">
                                <a href="{escape(cta_url, quote=True)}"
                                   style="display: inline-block; padding: 15px 30px;
                                          background-color: #625A96; color: #ffffff;
                                          text-decoration: none; border-radius: 8px;
                                          font-weight: bold;">
                                    {escape(cta_text)}
                                </a>
                            </div>

                            <p style="margin-top: 30px;">
                                For any assistance, contact us at
                                <a href="mailto:{support_html}" style="color: #625A96;">{support_html}</a>.
                            </p>

                            <p style="font-weight: bold; margin-top: 30px;">Regards,<br>Team {app_html}</p>
                        </td>
                    </tr>
                </table>
            </td>
        </tr>
    </table>
</body>
</html>
    """

    return html.strip()


def render_email_text(
    heading: str,
    subheading: str,
    body: str,
    *,
    app_name: str,
    cta_url: str,
    support_email: str,
    cta_text: str = DEFAULT_CTA_TEXT,
) -> str:
    """Render the plain text alternative of a notification email."""
    lines = [
        heading,
        "=" * len(heading),
        subheading,
        "",
        body,
        "",
        f"{cta_text}: {cta_url}",
        "",
        "---",
        f"For any assistance, contact us at {support_email}.",
        f"Regards, Team {app_name}",
    ]
    return "\n".join(lines)
