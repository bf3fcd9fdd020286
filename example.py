"""
Пример использования Vision сервиса
"""
import json
import sys
from pathlib import Path

import requests


def analyze_image(image_path: str, api_url: str = "http://localhost:8080") -> dict:
    """
    Отправить изображение на анализ

    Args:
        image_path: Путь к изображению
        api_url: URL Vision сервиса

    Returns:
        Результат анализа
    """
    image_file = Path(image_path)

    if not image_file.exists():
        raise FileNotFoundError(f"Image not found: {image_path}")

    print(f"📸 Reading image: {image_path}")
    image_bytes = image_file.read_bytes()

    print(f"📦 Image size: {len(image_bytes) / 1024:.2f} KB")
    print(f"🚀 Sending request to {api_url}/analyze")

    # Тело запроса - сырые байты изображения
    response = requests.post(
        f"{api_url}/analyze",
        data=image_bytes,
        headers={"Content-Type": "application/octet-stream"},
        timeout=120
    )

    result = response.json()

    if not result.get("success"):
        print(f"❌ Error: {response.status_code}")
        print(result.get("error"))
        return None

    # Выводим сводку
    info = result["imageInfo"]
    print(f"\n✅ Success! ({result['timestamp']})")
    print(f"🖼️  Image: {info['width']}x{info['height']} {info['format']}")

    if "fullText" in result:
        print("\n📝 Text:")
        for line in result["fullText"].splitlines():
            print(f"   {line}")

    if "faceDetection" in result:
        print(f"\n🙂 Faces: {len(result['faceDetection'])}")
        for face in result["faceDetection"]:
            quality = face.get("captureQuality")
            if quality is not None:
                print(f"   - quality {quality:.2f}")

    if "barcodes" in result:
        print(f"\n🔳 Barcodes: {len(result['barcodes'])}")
        for barcode in result["barcodes"]:
            print(f"   - {barcode['symbology']}: {barcode.get('payload')}")

    if "objects" in result:
        print("\n🏷️  Objects:")
        for obj in result["objects"]:
            print(f"   - {obj['identifier']}: {obj['confidence']:.2%}")

    if "horizon" in result:
        print(f"\n📐 Horizon angle: {result['horizon']['angle']:.2f}°")

    missing = [
        key for key in ("textRecognition", "faceDetection", "barcodes", "objects")
        if key not in result
    ]
    if missing:
        print(f"\n⚠️  Not available: {', '.join(missing)}")

    return result


def main():
    """Точка входа"""
    if len(sys.argv) < 2:
        print("Usage: python example.py <path_to_image> [api_url]")
        print("Example: python example.py photo.jpg")
        sys.exit(1)

    image_path = sys.argv[1]
    api_url = sys.argv[2] if len(sys.argv) > 2 else "http://localhost:8080"

    try:
        result = analyze_image(image_path, api_url)

        # Сохраняем результат в файл
        if result:
            output_file = Path(image_path).stem + "_analysis.json"
            with open(output_file, "w", encoding="utf-8") as f:
                json.dump(result, f, indent=2, ensure_ascii=False)
            print(f"\n💾 Full result saved to: {output_file}")

    except FileNotFoundError as e:
        print(f"❌ Error: {e}")
        sys.exit(1)

    except requests.exceptions.ConnectionError:
        print(f"❌ Error: Cannot connect to Vision service at {api_url}")
        print("Make sure the service is running: python run.py")
        sys.exit(1)


if __name__ == "__main__":
    main()
