"""
i18n catalog (Russian): every user-facing string the bot sends.
"""

from __future__ import annotations

MESSAGES = {
    # Reply keyboard captions (also accepted as text commands)
    "btn_start": "🌱 Старт",
    "btn_restart": "🌱 Начать заново",
    "btn_help": "📋 Помощь",
    "btn_pause": "⏸️ Пауза",
    "btn_resume": "▶️ Продолжить",
    "btn_progress": "📊 Мой прогресс",
    # Inline choices
    "btn_start_yes": "🌱 Да, готова",
    "btn_start_go": "🌱 Да, начинаем!",
    "btn_more_info": "❓ Расскажи подробнее",
    "btn_later": "⏰ Позже",
    "btn_quiz": "🧭 Подобрать темп курса",
    # /start branches
    "start_new": (
        "🌸 Привет{name}! Я бот-помощник по заботе о себе.\n\n"
        "За 7 дней мы мягко исследуем, как быть добрее к себе.\n\n"
        "Готова начать это путешествие?"
    ),
    "start_menu_hint": "Для быстрого доступа используй кнопки ниже:",
    "start_returning": (
        "🌸 С возвращением{name}!\n\n"
        "Ты сейчас на {day} дне курса заботы о себе.\n"
        "Продолжим наше путешествие? 💙"
    ),
    "start_completed": (
        "🎉 Привет{name}!\n\n"
        "Ты уже завершила 7-дневный курс заботы о себе!\n"
        "Поздравляю с этим достижением! 💙\n\n"
        "Можешь пройти курс заново или использовать полученные навыки в повседневной жизни."
    ),
    "enrolled": (
        "🎉 Отлично! Ты записана на курс!\n\n"
        "За день будет 4 сообщения:\n"
        "🌅 {morning} - Утреннее приветствие\n"
        "🌸 {exercise} - Упражнение дня\n"
        "💝 {phrase} - Фраза для размышления\n"
        "🌙 {evening} - Вечерняя рефлексия\n\n"
        "Хочешь подобрать темп курса под себя? 💙"
    ),
    "more_info": "📚 Курс состоит из 7 дней:\n\n{days}\n\nКаждый день - 4 коротких сообщения.\nГотова попробовать?",
    "more_info_line": "📅 День {day}: {title}",
    "later": 'Понимаю 🤗 Напиши "Старт" когда будешь готова.',
    # Help / progress
    "help_text": (
        "📋 Помощь по боту:\n\n"
        "🌸 Основные кнопки:\n"
        "• Старт - Начать или перезапустить курс\n"
        "• Мой прогресс - Показать текущий статус\n"
        "• Пауза/Продолжить - Управление курсом\n\n"
        "💙 О программе:\n"
        "7-дневный курс заботы о себе\n"
        "4 сообщения в день ({times})\n\n"
        "🆘 Поддержка: {email}"
    ),
    "not_started": 'Сначала нужно запустить бота. Нажми "Старт" 🌱',
    "progress_completed": "📊 Твой прогресс:\n\n🎉 Курс завершен!\nПоздравляю! Ты прошла все 7 дней заботы о себе.",
    "progress_active": "📊 Твой прогресс:\n\n📅 День: {day} из 7\n🌱 Статус: {status}",
    "status_paused": "На паузе",
    "status_active": "Активен",
    # Pause / resume / restart
    "paused": 'Курс приостановлен. Нажми "Продолжить" когда будешь готова 💙',
    "resumed": "Курс возобновлен! Продолжаем путь заботы о себе 🌱",
    "restarted": "🎉 Отлично{name}! Ты записана на курс заново!\n\nЗавтра утром тебе придет первое сообщение. 💙",
    # Course progression
    "day_advanced": "🌟 День {day} завершён! Завтра начнётся день {next_day}. До встречи утром 💙",
    "course_completed": "🎉 Ты прошла все 7 дней курса заботы о себе! Спасибо, что была с собой бережной 💙",
    # Responses
    "thanks_text": "Спасибо за откровенность 💙|Благодарю за доверие 🌸|Твои слова важны 💙|Спасибо, что поделилась 🤗",
    "thanks_button": "Спасибо за ответ! 💙|Важно, что ты находишь время на себя! 🌸|Хорошо, что ты написала это 💙",
    "crisis_reply": (
        "Я очень обеспокоена твоими словами 💙\n\n"
        "Пожалуйста, обратись:\n"
        "📞 Телефон доверия: 8-800-2000-122\n"
        "🚨 Экстренная помощь: 112\n\n"
        "Ты не одна."
    ),
    "alert_operator": '🚨 АЛЕРТ #{alert_id} от пользователя {who} (день {day}), слово "{keyword}":\n"{text}"',
    "error_generic": "Произошла ошибка. Попробуйте еще раз.",
    # Personalization quiz
    "quiz_q1": "1/3. Как ты себя чувствуешь в последнее время?",
    "quiz_q2": "2/3. Как часто ты ругаешь себя?",
    "quiz_q3": "3/3. Есть ли у тебя опыт заботы о себе?",
    "quiz_a_mood_bad": "😔 Тяжело",
    "quiz_a_mood_tired": "😩 Устала",
    "quiz_a_mood_ok": "🙂 Нормально",
    "quiz_a_critic_often": "Часто",
    "quiz_a_critic_sometimes": "Иногда",
    "quiz_a_critic_rarely": "Редко",
    "quiz_a_habit_none": "Нет",
    "quiz_a_habit_tried": "Пробовала",
    "quiz_a_habit_regular": "Да, регулярно",
    "quiz_result_critical": (
        "💙 Спасибо за честность. Сейчас тебе непросто, поэтому двигаемся очень бережно: "
        "выполняй только то, на что есть силы. Если станет совсем тяжело, "
        "пожалуйста, обратись за поддержкой: 8-800-2000-122."
    ),
    "quiz_result_trying": (
        "🌱 Ты уже пробовала заботиться о себе, это отличная основа. "
        "Курс поможет превратить попытки в привычку."
    ),
    "quiz_result_normal": (
        "🌸 Похоже, у тебя хороший ресурс. Используй курс, чтобы углубить практику "
        "и заметить новые грани доброты к себе."
    ),
    "quiz_result_unsure": (
        "🤍 Ничего страшного, если пока непонятно, что тебе нужно. "
        "Просто попробуй, а мы будем разбираться вместе."
    ),
    "quiz_expired": "Давай начнём опрос сначала 🌸",
    # Admin
    "admin_only": "Команда доступна только администратору.",
    "stats": "📊 Статистика:\n\n👥 Всего: {total}\n📈 Сегодня: {active_today}\n🎯 Завершили: {completed}\n🚨 Открытых алертов: {open_alerts}",
    "export_usage": "Использование: /export users|responses|alerts",
    "export_empty": "Нет данных для экспорта.",
    "alert_handled": "✅ Алерт #{alert_id} помечен как обработанный.",
    "alert_usage": "Использование: /handled <id>",
    "alert_unknown": "Алерт #{alert_id} не найден или уже обработан.",
}


def fmt(key: str, **kwargs) -> str:
    return MESSAGES[key].format(**kwargs)


def variants(key: str) -> list[str]:
    """Pipe-separated alternatives for randomized acknowledgements."""
    return MESSAGES[key].split("|")
