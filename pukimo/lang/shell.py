"""Handles interactive/command-line mode for the PukiMO interpreter. Uses cmd as backend."""

import cmd


class Shell(cmd.Cmd):
    """PukiMO interpreter shell. Lines are buffered while '{' and '}' are unbalanced, so blocks can span lines."""
    intro = "PukiMO interpreter :: Python backend\nType 'help' for more information, 'exit' to quit."
    prompt = "> "
    secondary_prompt = "... "  # used for line continuations
    _tmp_prompt = "> "         # also used for prompt swapping in line continuations

    def __init__(self, sess, *args, **kwargs):
        super().__init__(*args, **kwargs)

        self.sess = sess

        self._tmp_lines = []
        self._first_line = 1
        self.depth = 0
        self.line_num = 0

    def onecmd(self, line):
        """Sends every line to default while a block is open, so lines like 'help' inside it are not commands."""
        if self._tmp_lines and line != "EOF":
            return self.default(line)
        return super().onecmd(line)

    def default(self, line):
        """Executes arbitrary PukiMO code once its braces are balanced. An empty line flushes an unfinished block."""
        with self.sess.error_handler:  # needed because cmd.Cmd automatically exits on Exception
            self.line_num += 1
            if not self._tmp_lines:
                self._first_line = self.line_num

            self.depth, add_to_prev = self.sess.preprocess_line(line, self.depth)
            self._tmp_lines.append(line)
            if add_to_prev and line.strip():
                self.prompt = self.secondary_prompt
                return

            source = "\n".join(self._tmp_lines)
            self._tmp_lines = []
            self.depth = 0
            self.prompt = self._tmp_prompt

            if source.strip():
                self.sess.add(source, self._first_line)
                self.sess.run()

    def do_help(self, arg):
        """Prints a short tour of the language instead of per-command docs."""
        print("Welcome to the PukiMO interpreter!\n\n"
              "PukiMO is a small scripting language for Safari Zone adventures. Declare \n"
              "variables with 'var', print with 'print(...)', and build a zone with \n"
              "'var zone = SafariZone(balls=5, turns=10);'. Fill it with \n"
              "'zone.pokemon->add(\"Pikachu\");' and wander around with \n"
              "'explore(zone) { print(encounter); }'.\n\n"
              "Semicolons are optional at the end of a line, blocks may span several lines, \n"
              "and the value of an expression is printed back. Type 'exit' to quit.",
              file=self.stdout)

    def emptyline(self):
        """Do not repeat previous command on empty line."""
        return ""

    def do_EOF(self, arg):
        """Exits interpreter."""
        print(file=self.stdout)
        return self.do_exit(arg)

    def do_exit(self, arg):
        """Exits interpreter."""
        return True
