# Overview: Flask API route forwarding ID card images to the OCR service.

from flask import Blueprint, request, jsonify

from ..services import ocr_client
from ..decorators import require_auth, require_permission


ocr_bp = Blueprint("ocr", __name__, url_prefix="/api/ocr")

MAX_IMAGE_BYTES = 10 * 1024 * 1024


@ocr_bp.post("/id-card")
@require_auth
@require_permission("USE_OCR")
def id_card_route():
    """
    Multipart upload with an "image" file part.

    Always answers 200 once the upload is valid; "ok": false means the
    fields have to be typed in by hand.
    """
    upload = request.files.get("image")
    if upload is None:
        return jsonify({"error": "image file is required"}), 400

    image = upload.read(MAX_IMAGE_BYTES + 1)
    if len(image) > MAX_IMAGE_BYTES:
        return jsonify({"error": "image is too large"}), 413

    result = ocr_client.extract_id_card(
        image,
        filename=upload.filename or "id-card.jpg",
        content_type=upload.mimetype or "image/jpeg",
    )
    return jsonify(result), 200
