#!/usr/bin/env python3
"""
Пример использования библиотеки PyPly.

Этот скрипт демонстрирует основные возможности библиотеки
для чтения PLY файлов с гауссианами (3D Gaussian Splatting).
"""

import io
import struct

import numpy as np
import pyply


def create_sample_ply_data():
    """Создает пример PLY данных для демонстрации."""
    names = ["x", "y", "z",
             "f_dc_0", "f_dc_1", "f_dc_2",
             "opacity",
             "scale_0", "scale_1", "scale_2",
             "rot_0", "rot_1", "rot_2", "rot_3"]

    # Заголовок в формате binary_little_endian
    header = "ply\nformat binary_little_endian 1.0\nelement vertex 2\n"
    header += "".join(f"property float {name}\n" for name in names)
    header += "end_header\n"

    # Две гауссианы: масштабы хранятся в логарифмах, непрозрачность в логитах
    rows = [
        (0.0, 0.0, 0.0, 1.0, 0.0, -1.0, 2.0,
         np.log(0.1), np.log(0.2), np.log(0.3), 1.0, 0.0, 0.0, 0.0),
        (1.0, 2.0, 3.0, -1.0, 0.5, 1.0, -0.5,
         np.log(0.5), np.log(0.5), np.log(0.05), 0.92, 0.0, 0.38, 0.0),
    ]
    body = b"".join(struct.pack("<" + "f" * len(names), *row) for row in rows)

    return header.encode("ascii") + body


def main():
    """Основная функция демонстрации."""
    print("🚀 Демонстрация библиотеки PyPly")
    print("=" * 50)

    # Создаем пример PLY данных
    print("📦 Создаем пример PLY данных...")
    ply_data = create_sample_ply_data()
    print(f"✅ Создан PLY файл размером {len(ply_data)} байт")

    # Смотрим заголовок
    header = pyply.read_header(ply_data)
    print(f"\n📋 Заголовок: {header}")
    for element in header.elements:
        names = ", ".join(p.name for p in element.properties)
        print(f"  {element.name} ({element.count}): {names}")

    # Загружаем данные через PyPly
    print("\n📖 Загружаем данные через PyPly...")
    splats = pyply.load(io.BytesIO(ply_data))

    # Показываем результаты
    print("✅ Данные успешно загружены!")
    print(f"📊 Количество гауссиан: {splats.count} ({splats.format})")

    print("\n📋 Структура данных:")
    for key, array in splats.to_dict().items():
        print(f"  {key}: {array.shape} {array.dtype}")

    # Показываем примеры данных
    print("\n🔍 Примеры данных:")
    print(f"  Centers:\n{splats.center.reshape(-1, 3)}")
    print(f"  Covariance (m11, m12, m13, m22, m23, m33):\n{splats.covariance.reshape(-1, 6)}")
    for i, pixel in enumerate(splats.rgba):
        pixel = int(pixel)
        rgba = [(pixel >> shift) & 0xFF for shift in (0, 8, 16, 24)]
        print(f"  RGBA {i}: {rgba}")
    print(f"  BBox: {splats.bbox_min} .. {splats.bbox_max}")

    # Проверяем симметричность и положительность ковариаций
    print("\n🧮 Проверка ковариаций:")
    for i, (m11, m12, m13, m22, m23, m33) in enumerate(splats.covariance.reshape(-1, 6)):
        full = np.array([[m11, m12, m13], [m12, m22, m23], [m13, m23, m33]])
        eigenvalues = np.linalg.eigvalsh(full)
        print(f"  Гауссиана {i}: собственные значения = {eigenvalues}")

    print("\n✅ Все проверки пройдены успешно!")


if __name__ == "__main__":
    main()
