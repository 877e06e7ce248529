"""
User-facing texts (Russian, the language of the songbook)

Kept in one place so the assistant and formatter never build wording inline.
"""

# Field labels in a song header
LABEL_TITLE = 'Название'
LABEL_AUTHORS = 'Авторы'
LABEL_RHYTHM = 'Ритмика'
LABEL_GROUP = 'Группа'
LABEL_FEATURES = 'Особенности'

OPEN_SONGBOOK = 'Открыть аккордник'

START = 'Ну привет! Я бот с аккордами и песнями. Команда /help расскажет, что я умею.'

HELP = (
    '<b>Команды:</b>\n'
    '/chords - найти песню по автору, названию или строчке. '
    'Если найдётся несколько песен, я предложу выбрать\n'
    '/list - список всех песен в аккорднике\n'
    '/random - случайная песня\n'
    '/strumming - показать, как играется бой или перебор\n'
    '/circlerules - правила орлятского круга\n'
    '/anecdote - рассказать анекдот\n'
    '/talk - сказать что-нибудь\n'
    '/status - что я знаю на данный момент\n'
    '/cancel - отменить поиск\n'
    '/source - где лежит аккордник\n'
    '/ping - техническая команда: покажет id этого чата\n\n'
    'Можно просто написать часть названия или строчку из песни.'
)

CHOOSE_MODE = 'Как именно мне стоит искать песню?'
MODE_BUTTON_AUTHOR = 'по автору'
MODE_BUTTON_TITLE = 'по названию'
MODE_BUTTON_LYRIC = 'по тексту'

# The reply to one of these prompts carries the query for that mode
PROMPT_AUTHOR = 'Введите фамилию автора в ответе на это сообщение'
PROMPT_TITLE = 'Введите название песни в ответе на это сообщение'
PROMPT_LYRIC = 'Введите пару слов из песни в ответе на это сообщение'

# Sent before the results of a search started from one of the prompts
SEARCHING_AUTHOR = 'Ищу по автору...'
SEARCHING_TITLE = 'Ищу по названию...'
SEARCHING_LYRIC = 'Ищу по строчке...'

NOTHING_FOUND = (
    'Ничего не найдено :(\n'
    '<b>Не отчаивайтесь!</b> Чем короче запрос, тем больше шанс найти песню. '
    'Попробуйте одно слово или его часть. Регистр, пунктуация и разница '
    'между «е» и «ё» не учитываются.'
)
CHOOSE_SONG = 'Я нашёл несколько песен ({count}). Какая конкретно вам нужна?'
TOO_MANY = 'Нашлось слишком много песен ({count}). Пожалуйста, уточните запрос.'
SONG_GONE = 'Песня не найдена. Повторите поиск.'

CHOOSE_PATTERN = 'Какой именно бой/перебор вас интересует?'
NO_PATTERNS = 'Бои и переборы пока не добавлены.'

LIST_HEADER = 'Список песен в аккорднике ({count}):'
LIST_CONTINUED = 'Продолжение списка песен:'
EMPTY_SONGBOOK = 'В аккорднике пока нет песен. Попробуйте позже.'

CIRCLE_RULES_TITLE = '<b>Правила круга</b>'
NO_CIRCLE_RULES = 'Правила круга не найдены.'

NOTHING_TO_SAY = 'Мне пока нечего сказать.'
WATCH_YOUR_LANGUAGE = 'Хэй, поаккуратнее со словами :('
CANCELLED = 'Отмена операции. Вжух-вжух'

SOURCE = 'Все песни живут в аккорднике на Google Docs:'
NO_SOURCE = 'Ссылка на аккордник не настроена.'
PONG = 'Pong!\nid этого чата: <code>{chat_id}</code>'

STATUS = (
    'На данный момент я знаю:\n'
    '<b>Песен:</b> {songs}\n'
    '<b>Анекдотов:</b> {anecdotes}\n'
    '<b>Реплик:</b> {responses}\n'
    '<b>Боёв/переборов:</b> {patterns}'
)
STATUS_TOP = '\n\n<b>Чаще всего просили:</b>'

GENERIC_FAILURE = 'Произошла ошибка. Попробуйте позже.'
