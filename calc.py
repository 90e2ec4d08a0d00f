"""
simple integer calculator
- one line in, one integer (or one error) out
- no tokenizer: rules scan the text directly with a cursor
- negative literals, no unary minus before '(' or another '-'
- 32-bit wraparound arithmetic, division truncates toward zero
- parse tree rendered with pyecharts (--ast)

grammar:
expr                : term ((PLUS | MINUS) term)*
term                : factor ((MUL | DIV) factor)*
factor              : NUMBER
                    | LPAREN expr RPAREN
NUMBER              : MINUS? DIGIT+
"""

from enum import Enum
import argparse
import re
import sys

from pyecharts import options as opts
from pyecharts.charts import Tree

INT_BITS = 32
PROMPT = '>>> '
EXIT_COMMAND = 'exit'
NESTED_TOO_DEEPLY = 'expression nested too deeply'
LOCAL_ECHARTS = False
_SHOULD_LOG_TRACE = False

BANNER = '''Simple Arithmetic Expression Calculator
Supports: + - * / ( ) and integers
Type 'exit' to quit.
'''

###############################################################################
#                                                                             #
#   ERROR MESSAGE                                                             #
#                                                                             #
###############################################################################

class ErrorType(Enum):
    # parser
    UNEXPECTED_CHARACTER        = 'Unexpected character'
    UNEXPECTED_END_OF_INPUT     = 'Unexpected end of input'
    EXPECTED_DIGIT              = 'Expected digit'
    MISSING_CLOSING_PARENTHESIS = 'Missing closing parenthesis'
    # interpreter
    DIVISION_BY_ZERO            = 'Division by zero'


class ErrorInfo:
    # parser error

    @staticmethod
    def unexpected_character(item):
        return f'{ErrorType.UNEXPECTED_CHARACTER.value}: {item}'

    @staticmethod
    def unexpected_end_of_input():
        return ErrorType.UNEXPECTED_END_OF_INPUT.value

    @staticmethod
    def expected_digit():
        return ErrorType.EXPECTED_DIGIT.value

    @staticmethod
    def missing_closing_parenthesis():
        return ErrorType.MISSING_CLOSING_PARENTHESIS.value

    # interpreter error

    @staticmethod
    def division_by_zero():
        return ErrorType.DIVISION_BY_ZERO.value


class Error(Exception):
    error_type = None

    def __init__(self, position, message):
        super().__init__(message)
        self.position = position
        self.message = message

    def __str__(self):
        return self.message

    def __repr__(self):
        return f'{self.__class__.__name__}: <{self.position}>: {self.message}'


class ParserError(Error):
    pass


class InterpreterError(Error):
    pass


class UnexpectedCharacter(ParserError):
    error_type = ErrorType.UNEXPECTED_CHARACTER

    def __init__(self, position, char):
        super().__init__(position, ErrorInfo.unexpected_character(char))
        self.char = char


class UnexpectedEndOfInput(ParserError):
    error_type = ErrorType.UNEXPECTED_END_OF_INPUT

    def __init__(self, position):
        super().__init__(position, ErrorInfo.unexpected_end_of_input())


class ExpectedDigit(ParserError):
    error_type = ErrorType.EXPECTED_DIGIT

    def __init__(self, position):
        super().__init__(position, ErrorInfo.expected_digit())


class MissingClosingParenthesis(ParserError):
    error_type = ErrorType.MISSING_CLOSING_PARENTHESIS

    def __init__(self, position):
        super().__init__(position, ErrorInfo.missing_closing_parenthesis())


class DivisionByZero(InterpreterError):
    error_type = ErrorType.DIVISION_BY_ZERO

    def __init__(self, position):
        super().__init__(position, ErrorInfo.division_by_zero())


###############################################################################
#                                                                             #
#   ARITHMETIC                                                                #
#                                                                             #
###############################################################################

_MASK = (1 << INT_BITS) - 1
_SIGN_BIT = 1 << (INT_BITS - 1)

INT_MIN = -_SIGN_BIT
INT_MAX = _SIGN_BIT - 1


def wrap(n: int) -> int:
    """two's complement wraparound onto the INT_BITS signed range
    """
    n &= _MASK
    return n - (1 << INT_BITS) if n & _SIGN_BIT else n


def add(a, b):
    return wrap(a + b)


def sub(a, b):
    return wrap(a - b)


def mul(a, b):
    return wrap(a * b)


def div(a, b):
    """integer division truncating toward zero, like C

    `//` floors, so work on magnitudes and put the sign back.
    """
    quotient = abs(a) // abs(b)
    if (a < 0) != (b < 0):
        quotient = -quotient
    return wrap(quotient)


OPERATIONS = {
    '+': add,
    '-': sub,
    '*': mul,
    '/': div,
}

###############################################################################
#                                                                             #
#  PARSE TREE                                                                 #
#                                                                             #
###############################################################################

class AST:
    pass


class Num(AST):
    """number literal, sign included
    """

    def __init__(self, value: int, position: int):
        self.value = value
        self.position = position


class BinOp(AST):
    """binary operation, evaluated when built

    value: result of `left op right`, already wrapped
    """

    def __init__(self, left, op: str, right, position: int):
        self.left = left
        self.op = op
        self.right = right
        self.position = position
        self.value = OPERATIONS[op](left.value, right.value)


###############################################################################
#                                                                             #
#  PARSER                                                                     #
#                                                                             #
###############################################################################

class Parser:
    def __init__(self, text: str):
        """Parser

        One parser per line of input, never reused.

        Args:
          text: str, the whole expression
        """
        self.text = text
        self.pos = 0

    def log(self, msg):
        if _SHOULD_LOG_TRACE:
            print(msg)

    ### cursor

    def current_char(self):
        """char under the cursor, None at end of input
        """
        if self.pos >= len(self.text):
            return None
        return self.text[self.pos]

    def advance(self):
        self.pos += 1

    def skip_whitespace(self):
        while self.current_char() is not None and self.current_char().isspace():
            self.advance()

    @staticmethod
    def is_digit(char):
        # str.isdigit() also accepts things like '²'
        return char is not None and '0' <= char <= '9'

    ### rules

    def expr(self):
        """parse expr

        expr: term ((PLUS | MINUS) term)*
        """
        self.log(f'enter: expr <{self.pos}>')
        result = self.term()

        while True:
            self.skip_whitespace()
            op = self.current_char()
            if op not in ('+', '-'):
                break
            position = self.pos
            self.advance()
            result = BinOp(left=result, op=op, right=self.term(), position=position)

        self.log(f'leave: expr <{self.pos}> = {result.value}')
        return result

    def term(self):
        """parse term

        term: factor ((MUL | DIV) factor)*
        """
        self.log(f'enter: term <{self.pos}>')
        result = self.factor()

        while True:
            self.skip_whitespace()
            op = self.current_char()
            if op not in ('*', '/'):
                break
            position = self.pos
            self.advance()
            right = self.factor()
            if op == '/' and right.value == 0:
                raise DivisionByZero(position)
            result = BinOp(left=result, op=op, right=right, position=position)

        self.log(f'leave: term <{self.pos}> = {result.value}')
        return result

    def factor(self):
        """parse factor

        factor : NUMBER
               | LPAREN expr RPAREN
        """
        self.skip_whitespace()
        char = self.current_char()
        if char is None:
            raise UnexpectedEndOfInput(self.pos)

        if char == '(':
            self.advance()
            result = self.expr()
            self.skip_whitespace()
            if self.current_char() != ')':
                raise MissingClosingParenthesis(self.pos)
            self.advance()
            return result

        if char == '-' or self.is_digit(char):
            return self.number()

        raise UnexpectedCharacter(self.pos, char)

    def number(self):
        """parse a number literal

        NUMBER: MINUS? DIGIT+
        """
        self.skip_whitespace()
        start = self.pos

        negative = False
        if self.current_char() == '-':
            negative = True
            self.advance()

        if self.current_char() is None:
            raise UnexpectedEndOfInput(self.pos)
        if not self.is_digit(self.current_char()):
            raise ExpectedDigit(self.pos)

        result = 0
        while self.is_digit(self.current_char()):
            result = wrap(result * 10 + ord(self.current_char()) - ord('0'))
            self.advance()

        if negative:
            result = wrap(-result)

        self.log(f'number: {self.text[start:self.pos]!r} <{start}> = {result}')
        return Num(result, start)

    def parse(self):
        result = self.expr()
        self.skip_whitespace()
        if self.pos < len(self.text):
            raise UnexpectedCharacter(self.pos, self.current_char())
        return result


def evaluate(line: str) -> int:
    """evaluate one line of text

    Raises Error (one of its subclasses) when the line is not a valid expression.
    """
    return Parser(line).parse().value


###############################################################################
#                                                                             #
#  NodeVistor                                                                 #
#                                                                             #
###############################################################################

class NodeVistor:
    def visit(self, node):
        """dispatches
        """
        method_name = 'visit_' + type(node).__name__
        visitor = getattr(self, method_name, self.generic_visitor)
        return visitor(node)

    def generic_visitor(self, node):
        raise Exception(f'No visit_{type(node).__name__} method')


###############################################################################
#                                                                             #
#  DISPLAYER                                                                  #
#                                                                             #
###############################################################################

class Displayer(NodeVistor):
    def __init__(self, tree, title='Tree') -> None:
        self.tree = tree
        self.title = title

    def visit_BinOp(self, node: BinOp):
        data = {
            'name': f'{node.op}',
            'value': node.value,
            'children': [self.visit(node.left), self.visit(node.right)]
        }
        return data

    def visit_Num(self, node: Num):
        data = {
            'name': f'{node.value}',
            'value': node.value,
        }
        return data

    def pack(self):
        return self.visit(self.tree)

    def display(self, path='Tree.html'):
        data = self.pack()
        (
            Tree(init_opts=opts.InitOpts(page_title=self.title))
            .add(
                series_name="",  # name
                data=[data],  # data
                initial_tree_depth=-1,  # all expand
                orient="TB",  # top-to-bottom
                label_opts=opts.LabelOpts(
                    position="top",
                    vertical_align="middle",
                ),
            )
            .set_global_opts(title_opts=opts.TitleOpts(title=self.title))
            .render(path)
        )
        # modify js reference to local
        if LOCAL_ECHARTS:
            with open(path, 'r', encoding='utf-8') as fin:
                content = fin.read()
            content = re.sub(r'src="[^"]*echarts\.min\.js"', 'src="echarts.min.js"', content)
            with open(path, 'w', encoding='utf-8') as fout:
                fout.write(content)
        return path


###############################################################################
#                                                                             #
#   MAIN                                                                      #
#                                                                             #
###############################################################################

def run_line(text, ast_file=None):
    """evaluate one line for the console

    Returns (output, is_error). A tree that can not be rendered only warns
    on stderr, the result is still returned.
    """
    try:
        tree = Parser(text).parse()
    except Error as e:
        return f'Error: {e}', True
    except RecursionError:
        return f'Error: {NESTED_TOO_DEEPLY}', True

    output = f'Result = {tree.value}'
    if ast_file:
        try:
            Displayer(tree, title=text.strip()).display(ast_file)
        except OSError as e:
            print(f'Warning: can not write parse tree: {e}', file=sys.stderr)
        except RecursionError:
            print(f'Warning: can not write parse tree: {NESTED_TOO_DEEPLY}', file=sys.stderr)
    return output, False


def repl(ast_file=None):
    print(BANNER)
    while True:
        try:
            text = input(PROMPT)
        except (EOFError, KeyboardInterrupt):
            print('')
            break
        if text == EXIT_COMMAND:
            break
        if not text:
            continue

        output, is_error = run_line(text, ast_file)
        print(output, file=sys.stderr if is_error else sys.stdout)


def main(argv=None):
    global _SHOULD_LOG_TRACE
    global LOCAL_ECHARTS

    parser = argparse.ArgumentParser(description='Simple integer expression calculator')
    parser.add_argument('-c', '--command', metavar='EXPR', help='Evaluate EXPR and exit')
    parser.add_argument('--trace', action='store_true', help='Print parser rule information')
    parser.add_argument('--ast', metavar='FILE', help='Render the parse tree to an HTML file')
    parser.add_argument('--local-echarts', action='store_true', help='Load echarts.min.js from the current directory')
    args = parser.parse_args(argv)

    _SHOULD_LOG_TRACE = args.trace
    LOCAL_ECHARTS = args.local_echarts

    if args.command is not None:
        output, is_error = run_line(args.command, args.ast)
        print(output, file=sys.stderr if is_error else sys.stdout)
        return 1 if is_error else 0

    repl(args.ast)
    return 0


if __name__ == '__main__':
    sys.exit(main())
