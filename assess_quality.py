#!/usr/bin/env python3
"""
ОЦЕНКА КАЧЕСТВА ПО ТЕЛЕМЕТРИИ / TELEMETRY-BASED QUALITY ASSESSMENT
Модель / Model: ISO/IEC 25010 (цели -> метрики -> баллы / goals -> metrics -> scores)

Использование / Usage:
  1. Дерево целей / Goal tree:
     python assess_quality.py --list-goals

  2. Необходимая телеметрия / Required telemetry:
     python assess_quality.py --app-type frontend --goals Activity --required-telemetry

  3. Оценка / Assessment:
     python assess_quality.py --telemetry spans.json --app-type backend --goals "Time Behavior"
     python assess_quality.py -t spans.jsonl -g Security --history history.json -o reports/run1
"""

from telemetry_quality.cli import main

if __name__ == "__main__":
    main()
