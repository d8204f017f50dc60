"""
Default content for new editing sessions.
"""

DEFAULT_ENTRY_FILE = "main.tex"

WELCOME_DOCUMENT = r"""\documentclass{article}
\usepackage{graphicx}
\usepackage{amsmath}
\title{Welcome to Collab-Tex}
\author{Your Name}
\date{\today}

\begin{document}
\maketitle

\section{Introduction}
Collab-Tex is an online LaTeX editor with real-time collaboration features.
Start typing your LaTeX here and click the \textbf{Compile} button to see the result.

\subsection{Features}
\begin{itemize}
\item Real-time collaboration
\item Live preview
\item Multiple file support
\item Version control integration
\end{itemize}

\section{Mathematical Examples}
Here's an example of mathematical typesetting:

\begin{equation}
E = mc^2
\end{equation}

And the quadratic formula:
\[
x = \frac{-b \pm \sqrt{b^2 - 4ac}}{2a}
\]

\end{document}
"""
