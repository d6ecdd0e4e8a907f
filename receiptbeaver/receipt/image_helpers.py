"""Image normalization before sending a receipt photo for extraction."""

import io

MAX_IMAGE_DIMENSION = 2048  # Longest side sent to the extraction model
JPEG_QUALITY = 90
JPEG_MIME_TYPE = "image/jpeg"


def normalize_receipt_image(image_bytes: bytes, max_dimension: int = MAX_IMAGE_DIMENSION) -> bytes:
    """
    Return the photo as an upright RGB JPEG no larger than max_dimension.

    Phone photos carry their rotation in EXIF; it is applied here so the
    model sees the receipt the way the user took it.

    Args:
        image_bytes: Uploaded image data in any format Pillow can open
        max_dimension: Maximum allowed width or height

    Returns:
        JPEG bytes
    """
    from PIL import Image, ImageOps

    img = Image.open(io.BytesIO(image_bytes))
    img = ImageOps.exif_transpose(img)

    width, height = img.size
    if width > max_dimension or height > max_dimension:
        if width > height:
            new_size = (max_dimension, max(1, int(height * (max_dimension / width))))
        else:
            new_size = (max(1, int(width * (max_dimension / height))), max_dimension)
        img = img.resize(new_size, Image.Resampling.LANCZOS)

    buffer = io.BytesIO()
    img.convert("RGB").save(buffer, format="JPEG", quality=JPEG_QUALITY)
    return buffer.getvalue()
