import base64
import logging
import re
from io import BytesIO

import qrcode
from qrcode.constants import ERROR_CORRECT_M
from qrcode.exceptions import DataOverflowError

from qrgen.errors import RenderError

logger = logging.getLogger(__name__)

_URL_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


def classify(text: str) -> str:
    return "url" if _URL_PATTERN.match(text) else "text"


def _generate_qr_png(data: str, box_size: int = 10, border: int = 2) -> BytesIO:
    qr = qrcode.QRCode(
        version=None,
        error_correction=ERROR_CORRECT_M,
        box_size=box_size,
        border=border,
    )
    qr.add_data(data)
    qr.make(fit=True)
    qr_image = qr.make_image(fill_color="black", back_color="white")
    buffer = BytesIO()
    qr_image.save(buffer, format="PNG")
    buffer.seek(0)
    return buffer


def render_qr_data_url(data: str, box_size: int = 10, border: int = 2) -> str:
    """Render `data` as a PNG QR code and return it as a base64 data URL.

    Output is byte-identical for identical input and options. Raises
    RenderError when the data does not fit in a QR symbol or the encoder fails.
    """
    try:
        buffer = _generate_qr_png(data, box_size=box_size, border=border)
    except DataOverflowError as exc:
        logger.error("QR capacity exceeded for %d characters of input", len(data))
        raise RenderError() from exc
    except (ValueError, OSError) as exc:
        logger.exception("QR encoder failed")
        raise RenderError() from exc

    encoded = base64.b64encode(buffer.read()).decode("ascii")
    return f"data:image/png;base64,{encoded}"
