"""
Восстановление порядка чтения из неупорядоченных фрагментов текста

Только геометрия: фрагменты группируются в строки по вертикали,
строки - в абзацы по величине межстрочного промежутка.
Координаты нормализованы, ось Y направлена вверх.
"""
from typing import List, Sequence, Tuple

from vision_server.models.observations import TextObservation

# Новая строка: расстояние по Y больше доли высоты предыдущего фрагмента
LINE_BREAK_RATIO = 0.5
# Новый абзац: промежуток больше средней высоты соседних строк в 1.5 раза
PARAGRAPH_GAP_RATIO = 1.5


def reading_key(observation: TextObservation) -> Tuple[float, float, float, str]:
    box = observation.bounding_box
    return (-box.y, box.x, -box.height, observation.text)


def group_lines(observations: Sequence[TextObservation]) -> List[List[TextObservation]]:
    """
    Жадная группировка фрагментов в строки

    Фрагменты сортируются сверху вниз; при равном Y - слева направо, затем
    по убыванию высоты и по тексту, так что порядок входа не влияет на
    результат. Новая строка начинается, когда фрагмент ниже предыдущего
    больше чем на половину высоты предыдущего.

    Returns:
        Строки сверху вниз; фрагменты внутри строки - в порядке сортировки по Y
    """
    ordered = sorted(observations, key=reading_key)

    lines: List[List[TextObservation]] = []
    previous = None

    for observation in ordered:
        if previous is None:
            lines.append([observation])
        else:
            distance = abs(previous.bounding_box.y - observation.bounding_box.y)
            if distance > previous.bounding_box.height * LINE_BREAK_RATIO:
                lines.append([observation])
            else:
                lines[-1].append(observation)
        previous = observation

    return lines


def line_separator(previous_line: List[TextObservation], line: List[TextObservation]) -> str:
    """
    Разделитель между строками: пустая строка для нового абзаца

    Представитель строки - её верхний фрагмент.
    """
    prev_box = previous_line[0].bounding_box
    box = line[0].bounding_box

    gap = prev_box.y - box.y - prev_box.height
    average_height = (prev_box.height + box.height) / 2

    if gap > PARAGRAPH_GAP_RATIO * average_height:
        return "\n\n"
    return "\n"


def reconstruct(observations: Sequence[TextObservation]) -> str:
    """
    Собрать весь текст в порядке чтения

    Args:
        observations: Фрагменты текста в любом порядке

    Returns:
        Текст: слова строки через пробел, строки через перевод строки,
        абзацы через пустую строку. Пустой вход - пустая строка.
    """
    if not observations:
        return ""

    parts: List[str] = []
    lines = group_lines(observations)

    for index, line in enumerate(lines):
        if index > 0:
            parts.append(line_separator(lines[index - 1], line))

        left_to_right = sorted(line, key=lambda obs: obs.bounding_box.x)
        parts.append(" ".join(obs.text for obs in left_to_right))

    return "".join(parts)
