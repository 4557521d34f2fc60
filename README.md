# mailsieve

A library of the pieces a mail fetching and filtering agent is built from:
per-mail tags, `%`-template expansion, rule conditions, `.netrc` credential
lookup, a UID cache and a POP3 session that is driven one step at a time.

It needs nothing beyond the standard library and runs on POSIX systems
(it uses `pwd`, `SIGALRM` timers and `fchown`).

## Modules

- `mailsieve.tags` — `Tags`, an ordered key/value store (`add`, `find`,
  `match` by shell pattern on the key, `clear`, `dump`). `default_tags` resets
  a store to the source, host name and date tags (`hour`, `day`, `year`,
  `dayofweek`, `quarter`, `rfc822date` and so on); `update_tags` and
  `reset_tags` set and blank the `user`, `home`, `uid` and `gid` tags.
- `mailsieve.regex` — `Regex(pattern, flags)` compiles a multi-line pattern
  (`RegexFlag.IGNCASE`, `RegexFlag.NOSUBST`); `search` returns `Submatches`
  (spans of the whole match and up to nine groups) or `None`, `matches`
  returns a bool. An empty pattern matches only empty data. Bad patterns raise
  `RegexError`.
- `mailsieve.replace` — `replace` expands `%%`, `%[tag]`, `%0`–`%9`
  submatches and single-letter aliases such as `%a` (account), `%u` (user),
  `%h` (home), `%y` (year). Characters given in `strip_chars` are removed from
  substituted values unless the escape is written `%[:tag]` or `%:N`.
  `expand_path` expands a leading `~` or `~user`; `replace_path` does both.
- `mailsieve.netrc` — `open_netrc(home)` refuses a world-readable or writable
  `.netrc`; `netrc_tokens` splits it into tokens; `netrc_lookup` finds the
  login and password for a host (with `default` entries and detection of
  duplicates); `find_netrc` requires both. Problems raise `NetrcError`.
- `mailsieve.config` — `extract_macro` parses `$name=text` and `%name=number`
  into a `Macro`, `find_macro` looks one up, `fmt_strings` formats a quoted
  list. Invalid input raises `ConfigError`.
- `mailsieve.match` — `Mail`, `MailContext` and the conditions `SizeMatch`,
  `StringMatch`, `RegexpMatch` (over the headers, body or whole mail),
  `TaggedMatch`, `MatchedMatch`, `UnmatchedMatch` and `InCacheMatch`, each
  with `match(ctx)` and `describe()`. Conditions that cannot be evaluated
  raise `MatchError`.
- `mailsieve.attachment` — `Attachment` trees and `AttachmentMatch` for the
  count, total size, any size, any type or any name of a mail's attachments
  (`AttachOp`).
- `mailsieve.timer` — `AlarmTimer`, a one-shot timeout flag driven by
  `SIGALRM`; usable as a context manager that cancels it on exit.
- `mailsieve.shm` — `SharedFile`, a zero-filled memory-mapped file in a
  temporary directory that can be created, resized, closed, reopened,
  given to another owner and destroyed. Failures raise `ShmError`.
- `mailsieve.pop3cache` — `load_cache` and `save_cache` read and atomically
  rewrite the file of POP3 UIDs already seen; `Pop3Mail` pairs a UID with its
  mailbox index.
- `mailsieve.pop3` — `Pop3Fetcher`, the POP3 session (STLS, APOP or
  USER/PASS, STAT, UIDL, LIST, RETR, DELE, QUIT), with `FetchOnly` to fetch
  new, old or all mails and `FetchFlag` for polling and purging.

## Examples

Template expansion:

```python
from mailsieve.tags import Tags
from mailsieve.replace import replace

tags = Tags()
tags.add("account", "work")
tags.add("user", "alice")

print(replace("%[account]/%u", tags, None, None, ""))  # work/alice
```

A regexp condition whose submatch is reused in a template:

```python
from mailsieve.match import Area, Mail, MailContext, RegexpMatch
from mailsieve.regex import Regex

mail = Mail(bytearray(b"Subject: hello\n\nbody\n"), body=16)
ctx = MailContext(mail)

rule = RegexpMatch(Regex(r"^Subject: (.*)$"), Area.HEADERS)
print(rule.match(ctx))      # True
print(rule.describe())      # regexp "^Subject: (.*)$" in headers
print(ctx.expand("%1"))     # hello
```

## Driving a POP3 session

`Pop3Fetcher(account, connection)` does no networking itself. The connection
object must provide `connect()`, `disconnect()`, `start_tls()`, `putln(line)`
and `getln()`, which returns the next line without its line ending, or `None`
when no line is available yet.

Call `step(ctx)` repeatedly with a `FetchContext`:

- `FetchResult.AGAIN` — call again at once;
- `FetchResult.BLOCK` — wait until the connection has more data;
- `FetchResult.MAIL` — `ctx.mail` holds a complete mail; pass it to
  `commit(mail)` (set `mail.drop = True` first to delete it from the server);
- `FetchResult.EXIT` — the session is over.

Protocol errors raise `Pop3Error`. With `Pop3Account.path` set, the UIDs of
committed mails are saved to that cache file.

## What it does not do

mailsieve has no command-line program, no configuration file reader, no
network or TLS code of its own, and no delivery actions (mbox, maildir,
SMTP, pipes). IMAP and NNTP fetching, and running commands from rules, are
not provided. It supplies the parts listed above for a program that does
those things.

## Installing and testing

```
pip install .
pip install ".[test]"
pytest
```