"""Console UI for lingo application."""

from core.config import DEFAULT_TIME_LIMIT
from core.models import QUIZ_TYPES
from cli.api_client import LingoAPIClient

SWIPE_KEYS = {
    'k': 'right',   # know
    'e': 'down',    # easy
    'x': 'left',    # don't know
    'f': 'up',      # favorite
}


class ConsoleUI:
    """Console user interface for lingo application."""

    def __init__(self, client: LingoAPIClient):
        self.client = client

    def print_card(self, state: dict, show_answer: bool = False):
        """Print the current flashcard."""
        word = state['word']
        if not word:
            return
        print('\n' + '=' * 50)
        print(f"Card {state['current_index'] + 1}/{state['total_words']}"
              f"{'  ★' if word['is_favorite'] else ''}")
        print('=' * 50)
        print(f"\n  {word['term']}  {word['phonetic']}")
        if show_answer:
            print(f"\n  -> {word['translation']}")
            if word['example_sentence']:
                print(f"     {word['example_sentence']}")
        print()

    def print_summary(self, state: dict):
        """Print session results."""
        result = state.get('result') or {}
        print('\n' + '=' * 50)
        print('SESSION SUMMARY')
        print('=' * 50)
        if not result.get('words_studied'):
            print('\nNothing to study right now.')
        else:
            print(f"\nWords studied: {result['words_studied']}")
            print(f"Known: {result['words_correct']}  Unknown: {result['words_incorrect']}")
            print(f"Accuracy: {state['accuracy'] * 100:.0f}%")
            print(f"Duration: {result['duration']:.0f}s")
        if state.get('daily_goal_just_reached'):
            print('\n*** Daily goal reached! ***')
        for achievement in state.get('unlocked_achievements', []):
            print(f'Achievement unlocked: {achievement}')
        print('=' * 50 + '\n')

    def print_progress(self, progress: dict):
        """Print today's progress and streak."""
        today = progress['today']
        stats = progress['user_stats']
        print('\n' + '=' * 50)
        print('PROGRESS')
        print('=' * 50)
        print(f"\nToday: {today['words_learned']} learned, {today['words_reviewed']} reviewed "
              f"(goal {progress['daily_goal']}, {progress['goal_progress'] * 100:.0f}%)")
        print(f"Words due for review: {progress['words_due']}")
        print(f"Today's accuracy: {today['accuracy']:.0f}%")
        print(f"Streak: {stats['current_streak']} days (best {stats['longest_streak']})")
        print(f"Total words learned: {stats['total_words_learned']}")
        print('=' * 50 + '\n')

    def print_words(self, data: dict):
        """Print a word list with mastery badges."""
        counts = data['counts']
        print(f"\n{data['total']} words  (new {counts['new']}, learning {counts['learning']}, "
              f"reviewing {counts['reviewing']}, mastered {counts['mastered']}, "
              f"favorites {counts['favorites']})")
        for word in data['words']:
            star = ' ★' if word['is_favorite'] else ''
            print(f"  {word['term']:<20} {word['translation']:<20} {word['mastery_level']}{star}")
        print()

    def run_review(self, mode: str):
        """Run a flashcard session."""
        data = self.client.start_review(mode)
        session_id = data['session_id']
        state = data['state']
        print('Keys: k=know, e=easy, x=don\'t know, f=favorite, u=undo, q=quit')

        while state['status'] == 'active':
            self.print_card(state)
            input('(press Enter to reveal) ')
            self.print_card(state, show_answer=True)

            command = input('==> ').strip().lower()
            if command == 'q':
                self.client.close_review(session_id)
                return
            if command == 'u':
                state = self.client.undo(session_id)
                continue
            direction = SWIPE_KEYS.get(command)
            if direction is None:
                print('Unknown key.')
                continue
            state = self.client.swipe(session_id, direction)
            if 'word_mastered' in state.get('effects', []):
                print('\n*** Word mastered! ***')

        self.print_summary(state)

    def run_quiz(self, test_type: str):
        """Run a quiz. Answers are given by option number, or typed for fill-in-blank."""
        data = self.client.start_quiz(test_type)
        session_id = data['session_id']
        state = data['state']
        print(f'You have {DEFAULT_TIME_LIMIT:.0f}s per question.')

        try:
            while not state['completed']:
                question = state['question']
                print(f"\nQuestion {state['current_question_index'] + 1}/{state['total_questions']}")
                print(f"  {question['statement'] or question['prompt'] or '(listen)'}")
                for i, option in enumerate(question['options'], 1):
                    print(f'  {i}. {option}')

                reply = input('==> ').strip()
                if question['multi_select']:
                    picks = [question['options'][int(n) - 1] for n in reply.split()
                             if n.isdigit() and 0 < int(n) <= len(question['options'])]
                    result = self.client.answer(session_id, selection=picks)
                elif question['options'] and reply.isdigit() and 0 < int(reply) <= len(question['options']):
                    result = self.client.answer(session_id, answer=question['options'][int(reply) - 1])
                else:
                    result = self.client.answer(session_id, answer=reply)

                outcome = result['outcome']
                if outcome:
                    if outcome['timed_out']:
                        print("Time's up!")
                    elif outcome['is_correct']:
                        print('Correct!')
                    else:
                        expected = result['question']['correct_answers'] or result['question']['correct_answer']
                        print(f"Score {outcome['score']:.2f}. Expected: {expected}")
                state = self.client.next_question(session_id)
        finally:
            if not state['completed']:
                self.client.close_quiz(session_id)

        result = state['result']
        print(f"\nQuiz complete: {result['words_correct']}/{result['words_studied']} correct")
        if result['session_type'] == 'multiSelect':
            print(f"Full: {result['full_correct']}  Partial: {result['partial_correct']}  "
                  f"Zero: {result['zero_score']}  Score: {result['partial_score']:.2f}")

    def run(self):
        """Run the main application loop."""
        try:
            health = self.client.health_check()
            print(f"Connected to lingo server ({health['service']})")
        except Exception:
            print(f"Error: Cannot connect to server at {self.client.base_url}")
            print("Make sure the server is running: python run_server.py")
            return

        quiz_names = [t.value for t in QUIZ_TYPES]
        print('Commands: learn, review, quiz <type>, words [search], progress, exit')
        print(f"Quiz types: {', '.join(quiz_names)}\n")

        while True:
            command = input('lingo> ').strip().split()
            if not command:
                continue
            if command[0] == 'exit':
                print('Goodbye!')
                return
            try:
                if command[0] == 'learn':
                    self.run_review('learning')
                elif command[0] == 'review':
                    self.run_review('review')
                elif command[0] == 'quiz':
                    test_type = command[1] if len(command) > 1 else 'multipleChoice'
                    if test_type not in quiz_names:
                        print(f'Unknown quiz type: {test_type}')
                        continue
                    self.run_quiz(test_type)
                elif command[0] == 'words':
                    search = ' '.join(command[1:]) or None
                    self.print_words(self.client.list_words(search=search))
                elif command[0] == 'progress':
                    self.print_progress(self.client.get_progress())
                else:
                    print('Unknown command.')
            except Exception as e:
                print(f'Error: {e}')
