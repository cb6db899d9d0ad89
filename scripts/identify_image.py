# scripts/identify_image.py
"""
命令列辨識一張圖片。

  python scripts/identify_image.py leaf.jpg                # 經由伺服器 /identify（proxy 模式）
  python scripts/identify_image.py leaf.jpg --direct       # 本機直接呼叫 Gemini（需 GEMINI_API_KEY）
  python scripts/identify_image.py leaf.png --endpoint http://host:8000/api/v1/identify
"""
import argparse
import asyncio
import json
import sys

from plantid.client.dispatcher import DirectDispatcher, ProxyDispatcher
from plantid.client.encoder import EncodingError, encode_image
from plantid.core.config import settings
from plantid.core.logging import setup_logging
from plantid.schemas.identification import ErrorCode, IdentificationError, dump_result, is_error
from plantid.services.gemini import ConfigurationError


async def main(argv=None) -> int:
    parser = argparse.ArgumentParser(description="Identify the plant or fruit in an image.")
    parser.add_argument("image", help="path to the image file")
    parser.add_argument("--direct", action="store_true", help="call the model directly instead of the proxy")
    parser.add_argument("--endpoint", default=settings.PROXY_ENDPOINT_URL, help="proxy /identify URL")
    parser.add_argument("--mime", default=None, help="override the MIME type (default: guessed, image/jpeg)")
    args = parser.parse_args(argv)

    setup_logging()

    try:
        image = encode_image(args.image, mime_type=args.mime)
    except EncodingError as e:
        result = IdentificationError.of(ErrorCode.CLIENT_SIDE, str(e))
    else:
        if args.direct:
            try:
                dispatcher = DirectDispatcher.from_settings(settings)
            except ConfigurationError as e:
                dispatcher = None
                result = IdentificationError.of(ErrorCode.CONFIGURATION, str(e))
        else:
            dispatcher = ProxyDispatcher(args.endpoint, timeout=settings.PROXY_TIMEOUT_SEC)
        if dispatcher is not None:
            result = await dispatcher.identify(image)

    print(json.dumps(dump_result(result), ensure_ascii=False, indent=2))
    return 1 if is_error(result) else 0


if __name__ == "__main__":
    sys.exit(asyncio.run(main()))
