"""User-facing texts of the bot."""

WELCOME = (
    "Привет! Я бот для поиска картинок. "
    "Введите текстовый запрос, чтобы начать поиск."
)
REQUEST_IN_PROGRESS = "Запрос в процессе выполнения. Пожалуйста, подождите..."
NOTHING_FOUND = "По вашему запросу ничего не найдено. Пожалуйста, попробуйте еще раз."
SEARCH_FAILED = (
    "Произошла ошибка при выполнении запроса. "
    "Пожалуйста, попробуйте еще раз позже."
)
SESSION_EXPIRED = "Результаты поиска устарели. Отправьте новый запрос."

NAVIGATION_PROMPT = "Выберите действие:"
PREV_LABEL = "Назад"
NEXT_LABEL = "Далее"
