"""
Loopcraft - Template Configuration
====================================
Jinja2 templates (autoescaped) with the shop's filters and globals.
Only transactional emails are rendered server-side.
"""

import os

from fastapi.templating import Jinja2Templates

from config.settings import SHOP_NAME, SUPPORT_PHONE
from common.helpers import format_inr

# Initialize templates
TEMPLATE_DIR = os.path.join(os.path.dirname(os.path.dirname(os.path.abspath(__file__))), "templates")
templates = Jinja2Templates(directory=TEMPLATE_DIR)


def render_template(name: str, **context) -> str:
    """Render a template to a string (no request needed)."""
    return templates.get_template(name).render(**context)


# ==========================================
# Register Filters & Globals
# ==========================================

# Filters (usage in template: {{ value | inr }})
templates.env.filters["inr"] = format_inr
templates.env.filters["short_ref"] = lambda v: str(v)[-8:].upper() if v else "ORDER"

templates.env.globals["SHOP_NAME"] = SHOP_NAME
templates.env.globals["SUPPORT_PHONE"] = SUPPORT_PHONE
